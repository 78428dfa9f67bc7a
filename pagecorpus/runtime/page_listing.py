from __future__ import annotations

import logging

from pagecorpus.core.project_layout import ProjectLayout


logger = logging.getLogger(__name__)


def list_page_ids(layout: ProjectLayout) -> list[str]:
    """Page ids of the project's original images, sorted.

    Entries that cannot be inspected are skipped so a single unreadable file
    does not hide the rest of the listing.
    """
    images_dir = layout.original_images_dir
    if not images_dir.is_dir():
        return []

    image_ext = layout.settings.image_ext
    page_ids: set[str] = set()
    for path in images_dir.iterdir():
        try:
            if not path.is_file() or not path.name.endswith(image_ext):
                continue
            path.stat()
        except OSError:
            logger.debug("Skipping unreadable page image %s", path, exc_info=True)
            continue
        page_ids.add(path.name.removesuffix(image_ext))
    return sorted(page_id for page_id in page_ids if page_id)


def recognition_completed(layout: ProjectLayout, page_id: str) -> bool:
    """True when every line image of the page has a recognition file next to it."""
    if not layout.is_valid_page_id(page_id):
        return False
    page_dir = layout.page_dir(page_id)
    if not page_dir.is_dir():
        return False

    line_image_ext = layout.settings.line_image_ext
    recognition_ext = layout.settings.recognition_ext
    found_recognition = False

    for segment_dir in page_dir.iterdir():
        if not segment_dir.is_dir():
            continue
        for path in segment_dir.iterdir():
            if not path.is_file():
                continue
            if layout.is_recognition_file(path):
                found_recognition = True
            elif path.name.endswith(line_image_ext):
                line_id = path.name.removesuffix(line_image_ext)
                if not (segment_dir / f"{line_id}{recognition_ext}").is_file():
                    return False

    return found_recognition
