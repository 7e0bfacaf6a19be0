import itertools
import os
import sys
import threading
from pathlib import Path

# Run Qt headless so GUI tests work without a display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PIL import Image

# Add src to sys.path so we can import exam_studio
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from exam_studio.api.client import ApiError
from exam_studio.core.models import ExamDraft, ExamMetadata


class FakeAdminService:
    """
    In-memory stand-in for AdminService.

    Records every call in `calls` and keeps created records so that
    get_exam_structure reflects what was persisted. `fail_on(method, nth)`
    makes the nth call of a method raise ApiError.
    """

    def __init__(self):
        self.calls = []
        self.exams = {}
        self.sections = {}
        self.questions = {}
        self.options = {}
        self.structure_override = None
        self.structure_error = False
        self._ids = itertools.count(1)
        self._counts = {}
        self._failures = {}
        self._lock = threading.Lock()

    # Test controls
    def fail_on(self, method, nth=1, status=500, message="Server exploded"):
        self._failures[(method, nth)] = (status, message)

    def names(self):
        return [name for name, _ in self.calls]

    def _record(self, method, *args):
        with self._lock:
            self.calls.append((method, args))
            count = self._counts.get(method, 0) + 1
            self._counts[method] = count
            failure = self._failures.get((method, count))
        if failure:
            raise ApiError(*failure)

    def _new_id(self, prefix):
        with self._lock:
            return f"{prefix}-{next(self._ids)}"

    # Exams
    def create_exam(self, data, logo=None, thumbnail=None):
        self._record("create_exam", dict(data), logo, thumbnail)
        exam_id = self._new_id("exam")
        record = dict(data, id=exam_id)
        if logo is not None:
            record["logo_url"] = f"https://cdn.test/{exam_id}/logo.png"
        self.exams[exam_id] = record
        return record

    def update_exam(self, exam_id, data, logo=None, thumbnail=None):
        self._record("update_exam", exam_id, dict(data), logo, thumbnail)
        self.exams.setdefault(exam_id, {"id": exam_id}).update(data)
        return self.exams[exam_id]

    def get_exam(self, exam_id):
        self._record("get_exam", exam_id)
        return dict(self.exams[exam_id])

    def get_exam_structure(self, exam_id):
        self._record("get_exam_structure", exam_id)
        if self.structure_error:
            raise ApiError(503, "Structure unavailable")
        if self.structure_override is not None:
            return self.structure_override
        sections = []
        for sid, section in self.sections.items():
            if section["exam_id"] != exam_id:
                continue
            questions = []
            for qid, question in self.questions.items():
                if question["section_id"] != sid:
                    continue
                options = [dict(o) for o in self.options.values() if o["question_id"] == qid]
                questions.append(dict(question, options=options))
            sections.append(dict(section, questions=questions))
        return sections

    # Sections
    def create_section(self, data):
        self._record("create_section", dict(data))
        section_id = self._new_id("section")
        self.sections[section_id] = dict(data, id=section_id)
        return self.sections[section_id]

    def update_section(self, section_id, data):
        self._record("update_section", section_id, dict(data))
        self.sections[section_id].update(data)
        return self.sections[section_id]

    def delete_section(self, section_id):
        self._record("delete_section", section_id)
        self.sections.pop(section_id, None)

    # Questions
    def create_question(self, data, image=None):
        self._record("create_question", dict(data))
        question_id = self._new_id("question")
        self.questions[question_id] = dict(data, id=question_id)
        return self.questions[question_id]

    def update_question(self, question_id, data, image=None):
        self._record("update_question", question_id, dict(data))
        self.questions[question_id].update(data)
        return self.questions[question_id]

    def delete_question(self, question_id):
        self._record("delete_question", question_id)
        self.questions.pop(question_id, None)

    def upload_question_image(self, question_id, image):
        self._record("upload_question_image", question_id, image)
        return f"https://cdn.test/questions/{question_id}/{image.filename}"

    def remove_question_image(self, question_id):
        self._record("remove_question_image", question_id)

    # Options
    def create_option(self, data, image=None):
        self._record("create_option", dict(data))
        option_id = self._new_id("option")
        self.options[option_id] = dict(data, id=option_id)
        return self.options[option_id]

    def update_option(self, option_id, data, image=None):
        self._record("update_option", option_id, dict(data))
        self.options[option_id].update(data)
        return self.options[option_id]

    def delete_option(self, option_id):
        self._record("delete_option", option_id)
        self.options.pop(option_id, None)

    def upload_option_image(self, option_id, image):
        self._record("upload_option_image", option_id, image)
        return f"https://cdn.test/options/{option_id}/{image.filename}"

    def remove_option_image(self, option_id):
        self._record("remove_option_image", option_id)


def build_valid_draft(option_texts=("Paris", "London")):
    """One section, one single-answer question, first option correct."""
    metadata = ExamMetadata(
        title="Geography Mock 1",
        description="Capitals of the world",
        category="General Knowledge",
        category_id="cat-1",
        start_date="2026-01-10",
        end_date="2026-01-20",
    )
    draft = ExamDraft(metadata=metadata).add_section()
    section = draft.sections[0]
    draft = draft.add_question(section.id)
    question = draft.sections[0].questions[0]
    draft = draft.update_question(section.id, question.id, "text", "Capital of France?")

    # Trim the seeded options down to the requested texts
    for option in question.options[len(option_texts):]:
        draft = draft.remove_option(section.id, question.id, option.id)
    for option, text in zip(question.options, option_texts):
        draft = draft.update_option(section.id, question.id, option.id, "option_text", text)
    draft = draft.set_correct_answer(section.id, question.id, question.options[0].id)
    return draft


# Common test fixtures
@pytest.fixture
def sample_image(tmp_path: Path):
    """Create a simple test image."""
    img = Image.new("RGB", (200, 100), color="white")
    img_path = tmp_path / "sample.png"
    img.save(img_path)
    return img_path


@pytest.fixture
def fake_admin():
    return FakeAdminService()


@pytest.fixture
def valid_draft():
    return build_valid_draft()
