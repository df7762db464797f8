"""Sharing state machine.

This module intentionally contains *no* I/O. The consent controller and the
session derive the current phase from the presence snapshot and ask this
module which transitions and side effects are allowed.
"""

from __future__ import annotations

from enum import StrEnum


class SharingPhase(StrEnum):
    DISABLED = "disabled"
    ENABLED_NO_FIX = "enabled_no_fix"
    ENABLED_TRACKING = "enabled_tracking"


_VALID_TRANSITIONS: dict[SharingPhase, frozenset[SharingPhase]] = {
    SharingPhase.DISABLED: frozenset({SharingPhase.ENABLED_NO_FIX, SharingPhase.ENABLED_TRACKING}),
    SharingPhase.ENABLED_NO_FIX: frozenset({SharingPhase.ENABLED_TRACKING, SharingPhase.DISABLED}),
    SharingPhase.ENABLED_TRACKING: frozenset({SharingPhase.DISABLED}),
}


def sharing_phase(*, sharing_enabled: bool, has_fix: bool) -> SharingPhase:
    """Derive the phase from the two flags held in presence state."""
    if not sharing_enabled:
        return SharingPhase.DISABLED
    if not has_fix:
        return SharingPhase.ENABLED_NO_FIX
    return SharingPhase.ENABLED_TRACKING


def is_valid_transition(current: SharingPhase, target: SharingPhase) -> bool:
    """Staying in the same phase is always allowed."""
    return current == target or target in _VALID_TRANSITIONS[current]


def may_track(phase: SharingPhase) -> bool:
    """Refresh loops only run while the principal shares an actual position."""
    return phase == SharingPhase.ENABLED_TRACKING


def starts_tracking(previous: SharingPhase, current: SharingPhase) -> bool:
    """Whether moving from *previous* to *current* must publish and start the loop."""
    return current == SharingPhase.ENABLED_TRACKING and previous != SharingPhase.ENABLED_TRACKING
