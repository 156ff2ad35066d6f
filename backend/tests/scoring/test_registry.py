import logging
import os, sys
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))
from matchscore.scoring import ENGINES, FALLBACK_ENGINE, get_engine, pickleball, tennis


@pytest.mark.parametrize(
    "sport, engine",
    [
        ("tennis", tennis),
        ("padel", tennis),
        ("badminton", tennis),
        ("pickleball", pickleball),
    ],
)
def test_registered_sports(sport, engine):
    assert get_engine(sport) is engine


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        ENGINES["squash"] = tennis


def test_unknown_sport_falls_back_with_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="matchscore.scoring"):
        engine = get_engine("squash")
    assert engine is FALLBACK_ENGINE is tennis
    assert "squash" in caplog.text


def test_known_sport_does_not_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="matchscore.scoring"):
        get_engine("pickleball")
    assert caplog.records == []
