"""Particle-identifier constants and status-flag name helpers.

Loaders accept status flags either as an integer bit mask or as a list of
flag names (`"isPrompt"`, `"fromHardProcess"`, ...); this module maps those
names onto `StatusFlag` bits.
"""

from __future__ import annotations
__author__ = "Renato Quagliani <rquaglia@cern.ch>"


from typing import Iterable

from .models import StatusFlag

PDG_MUON = 13
PDG_PHOTON = 22
FINAL_STATE_STATUS = 1

_NAME_TO_FLAG: dict[str, StatusFlag] = {
    "isprompt": StatusFlag.IS_PROMPT,
    "isdecayedleptonhadron": StatusFlag.IS_DECAYED_LEPTON_HADRON,
    "istaudecayproduct": StatusFlag.IS_TAU_DECAY_PRODUCT,
    "isprompttaudecayproduct": StatusFlag.IS_PROMPT_TAU_DECAY_PRODUCT,
    "isdirecttaudecayproduct": StatusFlag.IS_DIRECT_TAU_DECAY_PRODUCT,
    "isdirectprompttaudecayproduct": StatusFlag.IS_DIRECT_PROMPT_TAU_DECAY_PRODUCT,
    "isdirecthadrondecayproduct": StatusFlag.IS_DIRECT_HADRON_DECAY_PRODUCT,
    "ishardprocess": StatusFlag.IS_HARD_PROCESS,
    "fromhardprocess": StatusFlag.FROM_HARD_PROCESS,
    "ishardprocesstaudecayproduct": StatusFlag.IS_HARD_PROCESS_TAU_DECAY_PRODUCT,
    "isdirecthardprocesstaudecayproduct": StatusFlag.IS_DIRECT_HARD_PROCESS_TAU_DECAY_PRODUCT,
    "fromhardprocessbeforefsr": StatusFlag.FROM_HARD_PROCESS_BEFORE_FSR,
    "isfirstcopy": StatusFlag.IS_FIRST_COPY,
    "islastcopy": StatusFlag.IS_LAST_COPY,
    "islastcopybeforefsr": StatusFlag.IS_LAST_COPY_BEFORE_FSR,
}


def is_photon(pdg_id: int) -> bool:
    return abs(pdg_id) == PDG_PHOTON


def is_muon(pdg_id: int) -> bool:
    return abs(pdg_id) == PDG_MUON


def status_flag_from_name(name: str) -> StatusFlag:
    """Resolve a flag name (case and `_` insensitive) into a `StatusFlag` bit."""
    key = name.strip().replace("_", "").lower()
    try:
        return _NAME_TO_FLAG[key]
    except KeyError as exc:
        supported = ", ".join(sorted(_NAME_TO_FLAG))
        raise ValueError(
            f"Unknown status flag name '{name}'. Supported names: {supported}"
        ) from exc


def status_flags_from_names(names: Iterable[str]) -> StatusFlag:
    """Combine several flag names into one bit set."""
    flags = StatusFlag(0)
    for name in names:
        flags |= status_flag_from_name(name)
    return flags
