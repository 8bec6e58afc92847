import logging

from comicgen.core.metrics import record_coverage_reassignments
from comicgen.schemas import Panel, Photo

logger = logging.getLogger(__name__)


def enforce_photo_coverage(panels: list[Panel], photos: list[Photo]) -> list[Panel]:
    """Make every photo appear on at least one panel, best effort.

    Only panels whose photo is used more than once are reassigned, so fixing
    one photo never leaves another uncovered. Panel count and order are kept;
    unknown photo ids are neither counted nor touched. When there are fewer
    spare duplicates than unused photos, the remaining photos stay uncovered.
    """
    if not panels or not photos:
        return panels

    photo_ids = [photo.id for photo in photos]
    counts: dict[str, int] = {pid: 0 for pid in photo_ids}
    for panel in panels:
        if panel.photo_id in counts:
            counts[panel.photo_id] += 1

    missing = [pid for pid in photo_ids if counts[pid] == 0]
    if not missing:
        return panels

    candidates = [
        idx for idx, panel in enumerate(panels) if panel.photo_id in counts and counts[panel.photo_id] > 1
    ]

    repaired = list(panels)
    cursor = 0
    covered = 0
    for needed in missing:
        while cursor < len(candidates) and counts[repaired[candidates[cursor]].photo_id] <= 1:
            cursor += 1
        if cursor >= len(candidates):
            break
        idx = candidates[cursor]
        donor = repaired[idx].photo_id
        repaired[idx] = repaired[idx].model_copy(update={"photo_id": needed})
        counts[donor] -= 1
        counts[needed] += 1
        covered += 1
        cursor += 1
        logger.debug("coverage reassigned panel=%d from=%s to=%s", idx, donor, needed)

    record_coverage_reassignments(covered)
    if covered < len(missing):
        logger.info(
            "coverage incomplete missing=%d covered=%d panels=%d photos=%d",
            len(missing),
            covered,
            len(panels),
            len(photos),
        )
    return repaired


def assign_fallback_photos(panels: list[Panel], photos: list[Photo]) -> list[Panel]:
    """Give panels with a missing or unknown photo id the photo at ``position % len(photos)``."""
    if not photos:
        return panels
    valid_ids = {photo.id for photo in photos}
    return [
        panel
        if panel.photo_id in valid_ids
        else panel.model_copy(update={"photo_id": photos[position % len(photos)].id})
        for position, panel in enumerate(panels)
    ]
