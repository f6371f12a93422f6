"""Key builders for derived data cached per profile and per account."""


def profile_shows(profile_id) -> str:
    return f"profile_{profile_id}_shows"


def profile_show_details(profile_id, show_id) -> str:
    return f"profile_{profile_id}_show_details_{show_id}"


def profile_episodes(profile_id) -> str:
    return f"profile_{profile_id}_episodes"


def profile_unwatched_episodes(profile_id) -> str:
    return f"profile_{profile_id}_unwatched_episodes"


def profile_recent_episodes(profile_id) -> str:
    return f"profile_{profile_id}_recent_episodes"


def profile_upcoming_episodes(profile_id) -> str:
    return f"profile_{profile_id}_upcoming_episodes"


def profile_statistics(profile_id) -> str:
    return f"profile_{profile_id}_statistics"


def profile_show_stats(profile_id) -> str:
    return f"profile_{profile_id}_show_stats"


def profile_watch_progress(profile_id) -> str:
    return f"profile_{profile_id}_watch_progress"


def account_profiles(account_id) -> str:
    return f"account_{account_id}_profiles"


def account_statistics(account_id) -> str:
    return f"account_{account_id}_statistics"


# Glob patterns (redis SCAN MATCH syntax)

def all_profile_data(profile_id) -> str:
    return f"profile_{profile_id}_*"


def profile_show_data(profile_id) -> str:
    return f"profile_{profile_id}_show*"


def all_account_data(account_id) -> str:
    return f"account_{account_id}_*"
