import logging

_configured = False


def setup_logging(log_level: str = "INFO"):
    """Console logging on the root logger. Safe to call more than once."""
    global _configured
    
    root = logging.getLogger()
    root.setLevel(log_level)
    if _configured:
        return
    
    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)
    _configured = True
