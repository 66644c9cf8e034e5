"""
balance_config -- single public entrypoint for ledger profiles.

Responsibility:
    Provides the only way to obtain ledger profiles at runtime through
    ``get_active_profiles()``.  YAML loading and validation are internal.

Architecture position:
    Configuration.  Sits above ``balance_kernel``; the kernel never imports
    from this package.

Invariants enforced:
    - Every returned profile has passed ``validate_profile``.
    - Same YAML always produces the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the profile file does not exist.
    - ``ProfileValidationError`` -- a ledger failed parsing or validation.
"""

from __future__ import annotations

from pathlib import Path

from balance_config.loader import ProfileSet, load_profile_set
from balance_config.validator import validate_profile
from balance_kernel.domain.profiles import LedgerProfile
from balance_kernel.exceptions import ProfileValidationError
from balance_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_PROFILE_PATH = Path(__file__).parent / "sets" / "default.yaml"


def load_active_profile_set(config_path: Path | None = None) -> ProfileSet:
    """Load and validate a profile file; returns the whole set with its checksum."""
    path = Path(config_path) if config_path is not None else DEFAULT_PROFILE_PATH
    profile_set = load_profile_set(path)

    for name, profile in profile_set.profiles.items():
        result = validate_profile(profile)
        if not result.is_valid:
            raise ProfileValidationError(name, result.errors)
        for warning in result.warnings:
            _logger.warning(
                "profile_warning",
                extra={"profile": name, "warning": warning},
            )

    _logger.info(
        "profiles_loaded",
        extra={
            "config_id": profile_set.config_id,
            "config_version": profile_set.version,
            "checksum": profile_set.checksum,
            "ledgers": sorted(profile_set.profiles),
        },
    )
    return profile_set


def get_active_profiles(config_path: Path | None = None) -> dict[str, LedgerProfile]:
    """
    The ONLY runtime entrypoint for ledger profiles.

    Args:
        config_path: Override the profile file.  Defaults to
            ``balance_config/sets/default.yaml``.

    Returns:
        Ledger name -> validated LedgerProfile.
    """
    return dict(load_active_profile_set(config_path).profiles)


__all__ = [
    "DEFAULT_PROFILE_PATH",
    "ProfileSet",
    "get_active_profiles",
    "load_active_profile_set",
]
