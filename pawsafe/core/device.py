"""
Device identity.

Votes are scoped per device, so every install keeps one stable random id.
"""

import logging
import uuid
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


def get_or_create_device_id(path: Union[str, Path]) -> str:
    """
    Return the persisted device id, creating it on first use.

    Args:
        path: File holding the device id

    Returns:
        Device id string
    """
    id_path = Path(path)

    if id_path.exists():
        device_id = id_path.read_text(encoding="utf-8").strip()
        if device_id:
            return device_id
        logger.warning(f"Empty device id file at {id_path}, regenerating")

    device_id = str(uuid.uuid4())
    id_path.parent.mkdir(parents=True, exist_ok=True)
    id_path.write_text(device_id, encoding="utf-8")
    logger.info(f"Created new device id {device_id}")

    return device_id
