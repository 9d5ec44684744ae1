"""
Pack inventory - discover runnable packs under the pack root by file name
"""

import logging
from pathlib import Path
from typing import Optional

from agent_contract.fitness.models import PackInventory, SuiteKind, TestPack
from agent_contract.utils.error_handling import PackSourceError

logger = logging.getLogger(__name__)


def pack_kind_from_name(file_name: str) -> Optional[SuiteKind]:
    if not file_name.endswith(".json"):
        return None
    if "lifecycle" in file_name:
        return "lifecycle"
    if "api-journey" in file_name:
        return "api_journey"
    if "agent-api-" in file_name:
        return "scenario"
    return None


def list_agent_test_packs(pack_root: str) -> PackInventory:
    """
    List recognizable packs directly under ``pack_root``, sorted by file name

    Raises:
        PackSourceError: If the pack root is not a directory
    """
    root = Path(pack_root).resolve()
    if not root.is_dir():
        raise PackSourceError(f"Pack root is not a directory: {root}")

    packs = []
    for entry in root.iterdir():
        if not entry.is_file():
            continue
        kind = pack_kind_from_name(entry.name)
        if kind is None:
            continue
        packs.append(
            TestPack(
                id=entry.name[: -len(".json")],
                kind=kind,
                file_path=str(entry),
                file_name=entry.name,
            )
        )

    packs.sort(key=lambda pack: pack.file_name)
    logger.debug(f"Found {len(packs)} packs under {root}")
    return PackInventory(pack_root=str(root), packs=packs)
