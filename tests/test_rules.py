from datetime import date
from itertools import product

import pytest

from watchtrack.services.rules import (
    StatusTally, EpisodeTally, derive_show_status, derive_season_status
)
from watchtrack.status import ShowStatus, SeasonStatus, EpisodeStatus


@pytest.mark.parametrize("tally, expected", [
    (StatusTally(watched=2, total=2), ShowStatus.WATCHED),
    (StatusTally(watched=2, up_to_date=1, total=3), ShowStatus.UP_TO_DATE),
    (StatusTally(watched=2, watching=1, not_watched=2, total=5), ShowStatus.WATCHING),
    (StatusTally(not_watched=5, total=5), ShowStatus.NOT_WATCHED),
    (StatusTally(total=0), ShowStatus.NOT_WATCHED),
    (StatusTally(watching=1, not_watched=3, total=4), ShowStatus.WATCHING),
    (StatusTally(watched=1, not_watched=3, total=4), ShowStatus.WATCHING),
])
def test_show_rule_table(tally, expected):
    assert derive_show_status(tally) is expected


def _expected_show_status(watched, up_to_date, watching, total):
    if total == 0:
        return ShowStatus.NOT_WATCHED
    if watched == total:
        return ShowStatus.WATCHED
    if up_to_date > 0:
        return ShowStatus.UP_TO_DATE
    if watched == 0 and watching == 0:
        return ShowStatus.NOT_WATCHED
    return ShowStatus.WATCHING


def test_show_rules_follow_decision_order_for_every_small_tally():
    for watched, up_to_date, watching, not_watched in product(range(4), repeat=4):
        for extra in range(2):
            total = watched + up_to_date + watching + not_watched + extra
            tally = StatusTally(watched, up_to_date, watching, not_watched, total)
            assert derive_show_status(tally) is _expected_show_status(
                watched, up_to_date, watching, total
            ), tally


def test_tally_from_seasons_counts_unaired_as_up_to_date_when_caught_up():
    tally = StatusTally.from_seasons([
        SeasonStatus.WATCHED, SeasonStatus.WATCHED, SeasonStatus.UNAIRED
    ])
    assert tally == StatusTally(watched=2, up_to_date=1, total=3)
    assert derive_show_status(tally) is ShowStatus.UP_TO_DATE


def test_tally_from_seasons_folds_unaired_into_not_watched_otherwise():
    tally = StatusTally.from_seasons([
        SeasonStatus.WATCHED, SeasonStatus.WATCHING, SeasonStatus.UNAIRED
    ])
    assert tally == StatusTally(watched=1, watching=1, not_watched=1, total=3)
    assert derive_show_status(tally) is ShowStatus.WATCHING

    only_unaired = StatusTally.from_seasons([SeasonStatus.UNAIRED])
    assert derive_show_status(only_unaired) is ShowStatus.NOT_WATCHED


@pytest.mark.parametrize("episodes, expected", [
    ([], SeasonStatus.NOT_WATCHED),
    ([EpisodeStatus.WATCHED, EpisodeStatus.WATCHED], SeasonStatus.WATCHED),
    ([EpisodeStatus.UNAIRED, EpisodeStatus.UNAIRED], SeasonStatus.UNAIRED),
    ([EpisodeStatus.NOT_WATCHED, EpisodeStatus.UNAIRED], SeasonStatus.NOT_WATCHED),
    ([EpisodeStatus.WATCHED, EpisodeStatus.NOT_WATCHED], SeasonStatus.WATCHING),
    ([EpisodeStatus.WATCHED, EpisodeStatus.UNAIRED], SeasonStatus.WATCHED),
    ([EpisodeStatus.WATCHED, EpisodeStatus.NOT_WATCHED, EpisodeStatus.UNAIRED], SeasonStatus.WATCHING),
])
def test_season_rule_table(episodes, expected):
    assert derive_season_status(EpisodeTally.from_episodes(episodes)) is expected


def test_episode_schedule_lets_airing_override_stored_value():
    as_of = date(2024, 6, 1)
    tally = EpisodeTally.from_schedule([
        (EpisodeStatus.WATCHED, date(2024, 1, 1)),
        (EpisodeStatus.UNAIRED, date(2024, 5, 1)),
        (EpisodeStatus.NOT_WATCHED, date(2024, 9, 1)),
        (EpisodeStatus.NOT_WATCHED, None),
    ], as_of)

    assert tally == EpisodeTally(watched=1, not_watched=2, unaired=1, total=4)


def test_season_with_every_aired_episode_watched_is_watched():
    as_of = date(2024, 6, 1)
    caught_up = EpisodeTally.from_schedule([
        (EpisodeStatus.WATCHED, date(2024, 5, 1)),
        (EpisodeStatus.NOT_WATCHED, date(2024, 7, 1)),
    ], as_of)
    nothing_aired = EpisodeTally.from_schedule([
        (EpisodeStatus.NOT_WATCHED, date(2024, 7, 1)),
    ], as_of)

    assert derive_season_status(caught_up) is SeasonStatus.WATCHED
    assert derive_season_status(nothing_aired) is SeasonStatus.UNAIRED


def test_schedule_tally_treats_caught_up_and_unaired_seasons_as_pending():
    tally = StatusTally.from_schedule([
        (SeasonStatus.WATCHED, True, False),
        (SeasonStatus.WATCHED, True, True),
        (SeasonStatus.NOT_WATCHED, False, True),
    ])

    assert tally == StatusTally(watched=1, up_to_date=2, total=3)
    assert derive_show_status(tally) is ShowStatus.UP_TO_DATE


def test_schedule_tally_without_anything_watched_is_not_watched():
    tally = StatusTally.from_schedule([
        (SeasonStatus.NOT_WATCHED, True, False),
        (SeasonStatus.NOT_WATCHED, False, True),
    ])

    assert derive_show_status(tally) is ShowStatus.NOT_WATCHED


def test_schedule_tally_counts_caught_up_as_watched_while_aired_content_remains():
    tally = StatusTally.from_schedule([
        (SeasonStatus.WATCHED, True, True),
        (SeasonStatus.NOT_WATCHED, True, False),
    ])

    assert tally == StatusTally(watched=1, not_watched=1, total=2)
    assert derive_show_status(tally) is ShowStatus.WATCHING
