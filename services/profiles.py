"""Sample user profiles used to preview rule sets."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import yaml

from schemas.personalization import UserProfile

BUNDLED_PROFILES_FILE = Path(__file__).resolve().parent.parent / "config" / "sample_profiles.yaml"


def load_sample_profiles(path: Optional[Union[str, Path]] = None) -> list[UserProfile]:
    """Load flat profile records from ``path`` (the bundled samples by default)."""

    source = Path(path) if path is not None else BUNDLED_PROFILES_FILE
    with source.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    records = data.get("profiles", []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        raise ValueError(f"Profile file must hold a list of profiles: {source}")
    return [UserProfile.from_flat(record) for record in records]


def find_profile(profiles: list[UserProfile], profile_id: str) -> Optional[UserProfile]:
    """Return the profile with ``profile_id`` or ``None``."""

    return next((profile for profile in profiles if profile.id == profile_id), None)
