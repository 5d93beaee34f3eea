"""
Excel image processor for sheetpics.
Extracts embedded and cell-encoded images from a workbook, names them from
row data and either compresses them into a ZIP or returns preview thumbnails.
"""
import asyncio
import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Dict, List, Mapping, NamedTuple, Optional, Union

import openpyxl

from . import image_processor
from .errors import ImageProcessingError, NoImagesFound, ProcessingFailed
from .image_sniffer import sniff_encoded_image
from .naming import (
    EMBEDDED_EXTENSION,
    HEADER_ROW,
    HeaderColumns,
    NameRegistry,
    cell_default_name,
    embedded_default_name,
    find_header_columns,
    replace_extension,
    row_label,
)

logger = logging.getLogger(__name__)


class EmbeddedSource(NamedTuple):
    """Image stored as a drawing anchored to the sheet."""
    sheet: str
    row: Optional[int]


class CellSource(NamedTuple):
    """Image stored as base64 text in a cell."""
    sheet: str
    row: int
    column: int


@dataclass
class ImageRecord:
    """One image found in the current request."""
    source: Union[EmbeddedSource, CellSource]
    raw_bytes: Optional[bytes]
    mime_type: str
    candidate_name: Optional[str] = None
    final_name: Optional[str] = None


class PreviewImage(NamedTuple):
    name: str
    preview: str


@dataclass
class ExtractionResult:
    """Outcome of a successful request."""
    images_found: int
    skipped: int
    names: List[str] = field(default_factory=list)
    previews: List[PreviewImage] = field(default_factory=list)
    archive: Optional[bytes] = None


class _Request:
    """Mutable state for one workbook run."""

    def __init__(self, preview: bool, name_mapping: Optional[Mapping[str, str]]):
        self.preview = preview
        self.name_mapping = {} if preview else dict(name_mapping or {})
        self.registry = NameRegistry()
        self.records: List[ImageRecord] = []
        self.outputs: Dict[int, Union[bytes, str]] = {}
        self.skipped = 0


def load_workbook(xlsx_bytes: bytes):
    """Open a workbook, mapping any parse failure to ProcessingFailed."""
    try:
        return openpyxl.load_workbook(io.BytesIO(xlsx_bytes))
    except Exception as e:
        raise ProcessingFailed(f"Failed to read Excel file: {e}") from e


def _row_values(sheet, row: Optional[int]) -> tuple:
    if not row or row > sheet.max_row:
        return ()
    return next(sheet.iter_rows(min_row=row, max_row=row, values_only=True), ())


def _anchor_row(img) -> Optional[int]:
    """1-based row of an image's top-left anchor, None when unknown."""
    anchor = getattr(img, "anchor", None)
    from_marker = getattr(anchor, "_from", None)
    row = getattr(from_marker, "row", None)
    if isinstance(row, int):
        return row + 1
    return None


def _embedded_image_bytes(img) -> Optional[bytes]:
    """Bytes of an openpyxl image, from its in-memory buffer or referenced file."""
    ref = getattr(img, "ref", None)
    try:
        if hasattr(ref, "getvalue"):
            return ref.getvalue()
        if isinstance(ref, (str, Path)):
            return Path(ref).read_bytes()
        return img._data()
    except (OSError, AttributeError, ValueError) as e:
        logger.warning("Could not read embedded image data: %s", e)
        return None


def _mime_for_embedded(img) -> str:
    fmt = (getattr(img, "format", None) or EMBEDDED_EXTENSION).lower()
    return "image/jpeg" if fmt in ("jpg", "jpeg") else f"image/{fmt}"


def _register(state: _Request, record: ImageRecord, candidate: str) -> int:
    """Assign the record's names and return its submission index."""
    record.candidate_name = candidate
    record.final_name = state.registry.register(candidate)
    state.records.append(record)
    logger.debug("%s -> %s", record.source, record.final_name)
    return len(state.records) - 1


def _convert(state: _Request, index: int) -> Awaitable[Union[bytes, str]]:
    """Hand the record's bytes to the compressor or thumbnailer."""
    record = state.records[index]
    data, record.raw_bytes = record.raw_bytes, None
    if state.preview:
        return image_processor.generate_thumbnail_async(data)
    return image_processor.compress_image_async(data)


async def _run_conversion(state: _Request, index: int) -> None:
    record = state.records[index]
    try:
        state.outputs[index] = await _convert(state, index)
    except ImageProcessingError as e:
        state.skipped += 1
        action = "preview" if state.preview else "compress"
        logger.warning("Skipping %s (%s failed): %s", record.final_name, action, e)


async def _process_embedded_images(state: _Request, sheet, columns: HeaderColumns) -> None:
    for img in getattr(sheet, "_images", []) or []:
        data = _embedded_image_bytes(img)
        if not data:
            continue

        row = _anchor_row(img)
        label = row_label(_row_values(sheet, row), columns, row)
        record = ImageRecord(
            source=EmbeddedSource(sheet=sheet.title, row=row),
            raw_bytes=data,
            mime_type=_mime_for_embedded(img),
        )
        index = _register(state, record, embedded_default_name(label, row))
        await _run_conversion(state, index)


async def _process_cell_images(state: _Request, sheet, columns: HeaderColumns) -> None:
    image_cols = [col for col in columns.headers if columns.is_image_column(col)]
    if not image_cols:
        return

    tasks = []
    for row_idx, values in enumerate(
        sheet.iter_rows(min_row=HEADER_ROW + 1, values_only=True), start=HEADER_ROW + 1
    ):
        for col in image_cols:
            if col > len(values):
                continue
            encoded = sniff_encoded_image(values[col - 1])
            if encoded is None:
                continue

            label = row_label(values, columns, row_idx)
            candidate = cell_default_name(label, row_idx, col, encoded.mime_type, state.name_mapping)
            record = ImageRecord(
                source=CellSource(sheet=sheet.title, row=row_idx, column=col),
                raw_bytes=encoded.data,
                mime_type=encoded.mime_type,
            )
            # Names are fixed here, before any conversion starts
            index = _register(state, record, candidate)
            tasks.append(_run_conversion(state, index))

    await asyncio.gather(*tasks)


def _build_archive(state: _Request) -> bytes:
    zip_buffer = io.BytesIO()
    with zipfile.ZipFile(zip_buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for index, record in enumerate(state.records):
            if index in state.outputs:
                zf.writestr(archive_name(record.final_name), state.outputs[index])
    return zip_buffer.getvalue()


def archive_name(final_name: str) -> str:
    """Entry name in the download archive; output is always JPEG."""
    return replace_extension(final_name, EMBEDDED_EXTENSION)


async def process_workbook(xlsx_bytes: bytes, preview: bool = False,
                           name_mapping: Optional[Mapping[str, str]] = None) -> ExtractionResult:
    """
    Extract every image from an .xlsx workbook.

    Args:
        xlsx_bytes: Workbook file content
        preview: Return thumbnails instead of a compressed archive
        name_mapping: Renames for cell images, keyed by cell_<row>_<col>.<ext>;
            ignored in preview mode

    Returns:
        ExtractionResult with previews (preview mode) or archive bytes

    Raises:
        ProcessingFailed: If the workbook cannot be read
        NoImagesFound: If the workbook holds no images
    """
    workbook = load_workbook(xlsx_bytes)
    state = _Request(preview, name_mapping)

    for sheet in workbook.worksheets:
        header_values = next(sheet.iter_rows(min_row=HEADER_ROW, max_row=HEADER_ROW, values_only=True), ())
        columns = find_header_columns(header_values)
        logger.debug(
            "Sheet %s: emp name col=%s, name col=%s",
            sheet.title, columns.emp_name_col, columns.name_col,
        )

        await _process_embedded_images(state, sheet, columns)
        await _process_cell_images(state, sheet, columns)

    if not state.records:
        raise NoImagesFound()

    result = ExtractionResult(
        images_found=len(state.records),
        skipped=state.skipped,
        names=[record.final_name for record in state.records],
    )
    if preview:
        result.previews = [
            PreviewImage(name=record.final_name, preview=state.outputs[index])
            for index, record in enumerate(state.records)
            if index in state.outputs
        ]
    else:
        result.archive = _build_archive(state)

    logger.info(
        "Processed workbook: %d images found, %d skipped, mode=%s",
        result.images_found, result.skipped, "preview" if preview else "full",
    )
    return result
