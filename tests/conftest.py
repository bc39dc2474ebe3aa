"""Shared fixtures: a tiny three-language profile set."""

from __future__ import annotations

import json

import pytest

from langfield.detect.profile import LanguageProfile
from langfield.detect.store import ProfileStore

TRAINING = {
    "en": "a a a b b c c d e",
    "fr": "a b b c c c d d d",
    "ja": "あ あ あ い う え え",
}


def make_profile(name: str) -> LanguageProfile:
    profile = LanguageProfile(name)
    for gram in TRAINING[name].split(" "):
        profile.add(gram)
    return profile


@pytest.fixture
def profiles() -> list[LanguageProfile]:
    return [make_profile(name) for name in ("en", "fr", "ja")]


@pytest.fixture
def store(profiles) -> ProfileStore:
    return ProfileStore.from_profiles(profiles)


@pytest.fixture
def profile_dir(tmp_path, profiles):
    directory = tmp_path / "profiles"
    directory.mkdir()
    for profile in profiles:
        (directory / profile.name).write_text(
            json.dumps(profile.to_dict(), ensure_ascii=False), encoding="utf-8"
        )
    return directory


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.langfield and LANGFIELD_* variables."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for var in ("LANGFIELD_PROFILE_DIR", "LANGFIELD_SEED", "LANGFIELD_ALPHA",
                "LANGFIELD_MAX_TEXT_LENGTH"):
        monkeypatch.delenv(var, raising=False)
