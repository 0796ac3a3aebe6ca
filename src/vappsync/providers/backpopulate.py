"""Write computed entity fields back into the stored entity list."""

import logging
from typing import List

from vappsync.models.entity import EntitySpec


logger = logging.getLogger(__name__)


def merge(stored: List[EntitySpec], reconciled: List[EntitySpec]) -> List[EntitySpec]:
    """Overlay computed fields from reconciled entities onto stored ones.

    Stored entries without a reconciled counterpart were not touched this
    cycle and are kept as they are.
    """
    by_key = {entity.key: entity for entity in reconciled}
    merged = []
    for entity in stored:
        match = by_key.get(entity.key)
        if match is None:
            merged.append(entity)
            continue
        logger.debug(f"Updating computed fields for entity {entity.key_str}")
        merged.append(entity.with_computed(match))
    return merged
