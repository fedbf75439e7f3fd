from dataclasses import replace
from datetime import datetime

import pytest

from vault_ocr.orchestrator import ImageAnnotator, Stage, build_hidden_block
from vault_ocr.services.annotation_requester import AnnotationBundle
from vault_ocr.services.image_normalizer import NormalizedImage
from vault_ocr.services.line_reconstructor import TextFragment
from vault_ocr.services.ocr_client import OcrError

NOW = datetime(2026, 3, 14, 9, 26, 53)

BUNDLE = AnnotationBundle(
    improved_text="```\n### Agenda\n- intro\n```",
    one_line_summary="Agenda for the kickoff.",
    new_file_name="Kickoff_Agenda",
    category_tag="#Work/Meetings",
)


class FakeOcr:
    def __init__(self, fragments=None, error=None):
        self.fragments = fragments or []
        self.error = error
        self.calls = []

    def extract_fragments(self, data, image_format):
        self.calls.append((data, image_format))
        if self.error is not None:
            raise self.error
        return self.fragments


class FakeRequester:
    def __init__(self, bundle=BUNDLE):
        self.bundle = bundle
        self.calls = []

    def request(self, **kwargs):
        self.calls.append(kwargs)
        return self.bundle


def fake_normalizer(path):
    return NormalizedImage(data=path.read_bytes(), format="png")


@pytest.fixture
def image(vault):
    path = vault / "Work" / "_files" / "Meetings" / "board_MD5.png"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"png-bytes")
    return path


@pytest.fixture
def note(vault):
    path = vault / "Kickoff.md"
    path.write_text("Intro\n![[board_MD5.png]]\nOutro", encoding="utf-8")
    return path


def make_annotator(settings, ocr=None, requester=None, normalizer=fake_normalizer):
    return ImageAnnotator(
        settings,
        normalizer=normalizer,
        ocr=ocr or FakeOcr([TextFragment("Agenda", is_line_break=True)]),
        requester=requester or FakeRequester(),
        clock=lambda: NOW,
    )


def test_hidden_block_layout():
    assert build_hidden_block(BUNDLE, NOW) == (
        "%%\n"
        "**Registered:** 2026-03-14 09:26:53\n"
        "**Tags:** #Work/Meetings\n"
        "**Summary:** Agenda for the kickoff.\n"
        "\n"
        "**Content:**\n"
        "```\n### Agenda\n- intro\n```\n"
        "%%"
    )


def test_hidden_block_omits_empty_tag_line():
    block = build_hidden_block(AnnotationBundle.empty(), NOW)
    assert "**Tags:**" not in block
    assert block.startswith("%%\n**Registered:** 2026-03-14 09:26:53\n**Summary:** \n")
    assert block.endswith("**Content:**\n\n%%")


def test_full_run_annotates_referencing_note(settings, image, note):
    requester = FakeRequester()
    annotator = make_annotator(settings, requester=requester)

    run = annotator.process_image(image)

    assert run.stage is Stage.DONE
    assert run.ok
    assert run.notes_updated == [note]
    assert note.read_text(encoding="utf-8") == (
        "Intro\n![[board_MD5.png]]\n" + build_hidden_block(BUNDLE, NOW) + "\nOutro"
    )
    (call,) = requester.calls
    assert call["note_title"] == "Kickoff"
    assert call["old_file_name"] == "board_MD5.png"
    assert call["category_path"] == "Work/Meetings"
    assert '"Agenda"' in call["ocr_text"]


def test_ocr_failure_never_reaches_notes(settings, image, note, caplog):
    requester = FakeRequester()
    annotator = make_annotator(settings, ocr=FakeOcr(error=OcrError("timeout")), requester=requester)

    run = annotator.process_image(image)

    assert run.stage is Stage.FAILED
    assert run.failed_stage is Stage.EXTRACTED
    assert run.error == "timeout"
    assert requester.calls == []
    assert note.read_text(encoding="utf-8") == "Intro\n![[board_MD5.png]]\nOutro"
    assert str(image) in caplog.text


def test_normalizer_failure_fails_first_stage(settings, image, note):
    def broken(path):
        raise OSError("cannot identify image file")

    ocr = FakeOcr()
    run = make_annotator(settings, ocr=ocr, normalizer=broken).process_image(image)

    assert run.failed_stage is Stage.NORMALIZED
    assert ocr.calls == []


def test_empty_bundle_still_links(settings, image, note):
    annotator = make_annotator(settings, requester=FakeRequester(AnnotationBundle.empty()))

    run = annotator.process_image(image)

    assert run.stage is Stage.DONE
    assert "**Summary:** \n" in note.read_text(encoding="utf-8")


def test_rerun_does_not_duplicate_block(settings, image, note):
    annotator = make_annotator(settings)
    annotator.process_image(image)
    first = note.read_text(encoding="utf-8")

    run = annotator.process_image(image)

    assert run.stage is Stage.DONE
    assert run.notes_updated == []
    assert note.read_text(encoding="utf-8") == first


def test_rename_propagates_into_notes(settings, image, note):
    annotator = make_annotator(replace(settings, rename_images=True))

    run = annotator.process_image(image)

    renamed = image.with_name("Kickoff_Agenda.png")
    assert run.stage is Stage.DONE
    assert run.image_path == renamed
    assert renamed.exists() and not image.exists()
    content = note.read_text(encoding="utf-8")
    assert content.startswith("Intro\n![[Kickoff_Agenda.png]]\n%%\n")
    assert "board_MD5.png" not in content


def test_rename_skipped_when_target_exists(settings, image, note):
    image.with_name("Kickoff_Agenda.png").write_bytes(b"other")
    annotator = make_annotator(replace(settings, rename_images=True))

    run = annotator.process_image(image)

    assert run.image_path == image
    assert image.exists()
    assert "![[board_MD5.png]]\n%%" in note.read_text(encoding="utf-8")


def test_handle_event_filters_unmarked_images(settings, vault):
    plain = vault / "plain.png"
    plain.write_bytes(b"x")
    ocr = FakeOcr()

    assert make_annotator(settings, ocr=ocr).handle_event(plain) is None
    assert ocr.calls == []
