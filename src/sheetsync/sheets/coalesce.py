"""Coalesce per-row updates into contiguous write blocks."""

import logging

from .address import row_ordinal
from .models import Block, UpdateEntry

logger = logging.getLogger(__name__)


def coalesce(updates: list[UpdateEntry]) -> list[Block]:
    """Group updates into maximal runs of consecutive rows.

    The row of an update is taken from the first cell of its row address.
    Updates must already be in ascending row order; they are never re-sorted,
    so a scattered input simply yields one block per row.
    """
    blocks: list[Block] = []
    current = None

    for entry in updates:
        row = row_ordinal(entry.row_address[0])
        if current is not None and row == current.end_row + 1:
            current.end_row = row
            current.entries.append(entry)
            continue
        current = Block(start_row=row, end_row=row, entries=[entry])
        blocks.append(current)

    logger.debug(f"Coalesced {len(updates)} updates into {len(blocks)} blocks")
    return blocks
