"""
Registry Snapshots

Persist and restore a deployment's state as a single JSON document. Bytes
are hex-encoded. Authorization tokens are never part of a snapshot, and
programmable accounts must be re-registered after loading.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from agentattest.config import Clock, RegistryConfig
from agentattest.deployment import Deployment
from agentattest.exceptions import AttestationError, StorageError
from agentattest.identity.accounts import AccountDirectory
from agentattest.identity.source import InMemoryIdentityRegistry

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def save_snapshot(path: Union[str, Path], deployment: Deployment) -> None:
    """Write *deployment* to *path* as JSON.

    Args:
        path: Destination file; parent directories are created.
        deployment: The registries to persist.
    """
    path = Path(path)
    data = {
        "version": SNAPSHOT_VERSION,
        "config": deployment.config.model_dump(),
        "identity": deployment.identity.export_state(),
        "reputation": deployment.reputation.export_state(),
        "validation": deployment.validation.export_state(),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    logger.info("Saved snapshot to %s", path)


def load_snapshot(
    path: Union[str, Path],
    accounts: Optional[AccountDirectory] = None,
    clock: Optional[Clock] = None,
) -> Deployment:
    """Restore a deployment written by :func:`save_snapshot`.

    Raises:
        StorageError: If the file is missing, not JSON, or inconsistent.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise StorageError(f"Cannot read snapshot {path}: {exc}") from exc

    if not isinstance(raw, dict) or raw.get("version") != SNAPSHOT_VERSION:
        raise StorageError(f"Unsupported snapshot format in {path}")

    try:
        config = RegistryConfig.model_validate(raw["config"])
        identity = InMemoryIdentityRegistry.from_state(raw["identity"])
        deployment = Deployment.create(
            config=config, identity=identity, accounts=accounts, clock=clock
        )
        deployment.reputation.import_state(raw["reputation"])
        deployment.validation.import_state(raw["validation"])
    except (KeyError, TypeError, ValueError, ValidationError, AttestationError) as exc:
        raise StorageError(f"Corrupt snapshot {path}: {exc}") from exc

    logger.info("Loaded snapshot from %s", path)
    return deployment
