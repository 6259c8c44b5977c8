# SPDX-License-Identifier: AGPL-3.0-or-later
from __future__ import annotations

import io
from pathlib import Path
from typing import List

import pytest
from PIL import Image
from pypdf import PdfWriter

from file_preview import pipeline as pipeline_module
from file_preview.converters import DocumentConverter, DocxRenderer
from file_preview.errors import (
    ConversionBackendError,
    NoFileError,
    UnimplementedRouteError,
    UnsupportedMimeError,
)
from file_preview.files import InputFile
from file_preview.models import PreviewOutput
from file_preview.pipeline import ConversionPipeline, Route
from file_preview.registry import HandlerRegistry
from file_preview.settings import PreviewSettings, TempSettings


class RecordingHandler:
    def __init__(self) -> None:
        self.output = PreviewOutput("image/png", b"custom-bytes")
        self.calls: List[InputFile] = []

    def convert(self, file: InputFile) -> PreviewOutput:
        self.calls.append(file)
        return self.output


class BlankPdfConverter(DocumentConverter):
    name = "blank"

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[tuple] = []

    def convert(self, source, destination) -> None:
        self.calls.append((Path(source), Path(destination)))
        writer = PdfWriter()
        writer.add_blank_page(width=100, height=50)
        with open(destination, "wb") as handle:
            writer.write(handle)


class FailingConverter(DocumentConverter):
    name = "failing"

    def convert(self, source, destination) -> None:
        raise ConversionBackendError(self.name, "renderer unavailable")


def _settings(tmp_path: Path, disposal: str = "delete") -> PreviewSettings:
    return PreviewSettings(
        temp=TempSettings(directory=str(tmp_path / "scratch"), disposal=disposal),
    )


def _pipeline(tmp_path: Path, **kwargs) -> ConversionPipeline:
    settings = kwargs.pop("settings", None) or _settings(tmp_path)
    registry = kwargs.pop("registry", None)
    if registry is None:
        registry = HandlerRegistry()
    return ConversionPipeline(registry, settings=settings, **kwargs)


def _decode(payload: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(payload))
    image.load()
    return image


def test_jpeg_input_produces_decodable_jpeg(tmp_path: Path, make_image) -> None:
    output = _pipeline(tmp_path).generate(InputFile(make_image("photo.jpg", size=(32, 16))))

    assert output.content_type == "image/jpg"
    assert output.payload
    decoded = _decode(output.payload)
    assert decoded.format == "JPEG"
    assert decoded.size == (32, 16)


def test_png_input_is_converted_to_jpeg(tmp_path: Path, make_image) -> None:
    output = _pipeline(tmp_path).generate(InputFile(make_image("icon.png", mode="RGBA")))
    assert output.content_type == "image/jpg"
    assert _decode(output.payload).format == "JPEG"


def test_pdf_route_uses_first_page_only(tmp_path: Path, make_pdf) -> None:
    pdf = make_pdf(pages=[(72, 144), (300, 300), (10, 10)])
    settings = _settings(tmp_path)
    settings.raster.pdf_zoom = 1.0

    output = _pipeline(tmp_path, settings=settings).generate(InputFile(pdf))

    assert output.content_type == "image/jpg"
    assert _decode(output.payload).size == (72, 144)


def test_custom_handler_beats_builtin_pdf_route(tmp_path: Path, make_pdf) -> None:
    registry = HandlerRegistry()
    handler = RecordingHandler()
    registry.register("application/pdf", handler)
    pdf = InputFile(make_pdf())

    output = _pipeline(tmp_path, registry=registry).generate(pdf)

    assert output is handler.output
    assert handler.calls == [pdf]


def test_no_file_raises(tmp_path: Path) -> None:
    with pytest.raises(NoFileError):
        _pipeline(tmp_path).generate(None)


def test_zip_is_unsupported(tmp_path: Path) -> None:
    import zipfile

    path = tmp_path / "archive.zip"
    with zipfile.ZipFile(str(path), "w") as archive:
        archive.writestr("a.txt", "a")

    with pytest.raises(UnsupportedMimeError) as excinfo:
        _pipeline(tmp_path).generate(InputFile(path))
    assert excinfo.value.mime == "application/zip"


def test_eligible_spreadsheet_without_route_is_unimplemented(tmp_path: Path, make_openxml) -> None:
    registry = HandlerRegistry()
    registry.register("application/vnd.openxmlformats-officedocument.*", RecordingHandler())
    sheet = make_openxml("book.xlsx", "xl/workbook.xml", "spreadsheetml.sheet.main")

    with pytest.raises(UnimplementedRouteError) as excinfo:
        _pipeline(tmp_path, registry=registry).generate(InputFile(sheet))
    assert excinfo.value.mime.endswith("spreadsheetml.sheet")


def test_eligible_text_without_handler_is_unimplemented(tmp_path: Path) -> None:
    registry = HandlerRegistry()
    registry.classifier.allow("text/*")
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")

    with pytest.raises(UnimplementedRouteError):
        _pipeline(tmp_path, registry=registry).generate(InputFile(path))


def test_office_route_matches_manually_rendered_pdf(tmp_path: Path, make_docx) -> None:
    document = make_docx(paragraphs=["First paragraph", "Second paragraph"])
    converter = DocxRenderer()
    pipeline = _pipeline(tmp_path, converter=converter)

    via_office = pipeline.generate(InputFile(document))

    manual_pdf = tmp_path / "manual.pdf"
    converter.convert(document, manual_pdf)
    via_pdf = pipeline.generate(InputFile(manual_pdf))

    assert via_office.content_type == "image/jpg"
    assert via_office.payload == via_pdf.payload


def test_office_route_reenters_the_whole_pipeline(tmp_path: Path, make_docx) -> None:
    registry = HandlerRegistry()
    handler = RecordingHandler()
    registry.register("application/pdf", handler)
    converter = BlankPdfConverter()

    output = _pipeline(tmp_path, registry=registry, converter=converter).generate(
        InputFile(make_docx())
    )

    assert output is handler.output
    (source, destination), = converter.calls
    assert source.suffix == ".docx"
    assert handler.calls[0].path == destination
    assert destination.suffix == ".pdf"


def test_intermediate_pdf_is_deleted_by_default(tmp_path: Path, make_docx) -> None:
    converter = BlankPdfConverter()
    _pipeline(tmp_path, converter=converter).generate(InputFile(make_docx()))

    (_, destination), = converter.calls
    assert destination.parent == tmp_path / "scratch"
    assert not destination.exists()


def test_intermediate_pdf_is_kept_when_configured(tmp_path: Path, make_docx) -> None:
    converter = BlankPdfConverter()
    settings = _settings(tmp_path, disposal="keep")
    _pipeline(tmp_path, converter=converter, settings=settings).generate(InputFile(make_docx()))

    (_, destination), = converter.calls
    assert destination.exists()
    assert destination.name.startswith("FilePreview")


def test_converter_failure_propagates_without_fallback(tmp_path: Path, make_docx) -> None:
    registry = HandlerRegistry()
    image_handler = RecordingHandler()
    registry.register("image/png", image_handler)

    with pytest.raises(ConversionBackendError, match="renderer unavailable"):
        _pipeline(tmp_path, registry=registry, converter=FailingConverter()).generate(
            InputFile(make_docx())
        )
    assert image_handler.calls == []
    assert list((tmp_path / "scratch").iterdir()) == []


def test_legacy_word_is_routed_once_eligible(tmp_path: Path) -> None:
    path = tmp_path / "legacy.doc"
    header = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 504
    path.write_bytes(header + "WordDocument".encode("utf-16-le") + b"\x00\x00")
    registry = HandlerRegistry()
    converter = BlankPdfConverter()
    pipeline = _pipeline(tmp_path, registry=registry, converter=converter)

    with pytest.raises(UnsupportedMimeError):
        pipeline.generate(InputFile(path))

    registry.classifier.allow("application/msword")
    output = pipeline.generate(InputFile(path))

    assert output.content_type == "image/jpg"
    assert len(converter.calls) == 1


def test_route_for_reports_dispatch_decision(tmp_path: Path) -> None:
    registry = HandlerRegistry()
    registry.register("image/gif", RecordingHandler())
    pipeline = _pipeline(tmp_path, registry=registry)

    assert pipeline.route_for("image/gif") is Route.CUSTOM
    assert pipeline.route_for("image/png") is Route.IMAGE
    assert pipeline.route_for("application/pdf") is Route.PDF
    assert pipeline.route_for("application/msword") is Route.OFFICE_WORD
    assert pipeline.route_for("application/vnd.ms-excel") is None
    assert pipeline.route_for("") is None


def test_converter_is_built_from_settings_lazily(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    settings.converter.backend = "docx"
    pipeline = ConversionPipeline(HandlerRegistry(), settings=settings)

    assert pipeline._converter is None
    assert isinstance(pipeline.converter, DocxRenderer)


def test_pillow_only_image_format_is_previewed(tmp_path: Path, make_image) -> None:
    ppm = make_image("frame.ppm", size=(20, 10), fmt="PPM")

    output = _pipeline(tmp_path).generate(InputFile(ppm))

    assert output.content_type == "image/jpg"
    assert _decode(output.payload).size == (20, 10)


def test_svg_reaches_its_registered_handler(tmp_path: Path) -> None:
    path = tmp_path / "logo.svg"
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<svg xmlns="http://www.w3.org/2000/svg" width="8" height="8"></svg>\n',
        encoding="utf-8",
    )
    registry = HandlerRegistry()
    handler = RecordingHandler()
    registry.register("image/svg+xml", handler)

    output = _pipeline(tmp_path, registry=registry).generate(InputFile(path))

    assert output is handler.output
    assert handler.calls[0].path == path


def test_intermediate_pdf_removal_is_deferred_to_exit(
    tmp_path: Path, make_docx, monkeypatch
) -> None:
    registered: List[tuple] = []
    monkeypatch.setattr(pipeline_module.atexit, "register", lambda *args: registered.append(args))
    converter = BlankPdfConverter()
    settings = _settings(tmp_path, disposal="atexit")

    _pipeline(tmp_path, converter=converter, settings=settings).generate(InputFile(make_docx()))

    (_, destination), = converter.calls
    assert destination.exists()
    assert registered == [(pipeline_module._remove_quietly, destination)]
