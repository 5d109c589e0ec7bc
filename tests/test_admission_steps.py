from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from app import create_app
from app.extensions import db
from app.models import AdmissionStep
from app.utils.admission_steps import (
    create_step,
    delete_step,
    list_steps,
    move_step,
    move_step_to,
    next_step_number,
    renumber_steps,
    sequence_problems,
)
from app.utils.content import get_admission_process


class TestConfig:
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    TESTING = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False


def _titles():
    return [row.title for row in list_steps()]


def _numbers():
    return [row.step_number for row in list_steps()]


def _seed(*titles):
    return [create_step(title=title) for title in titles]


def test_create_appends_dense_numbers():
    app = create_app(TestConfig)
    with app.app_context():
        assert next_step_number() == 1
        _seed("Enquiry", "Counselling", "Registration")
        assert _numbers() == [1, 2, 3]
        assert _titles() == ["Enquiry", "Counselling", "Registration"]
        assert sequence_problems() == []


def test_move_up_swaps_with_previous():
    app = create_app(TestConfig)
    with app.app_context():
        _, _, third = _seed("A", "B", "C")
        assert move_step(third, "up") is True
        assert _titles() == ["A", "C", "B"]
        assert _numbers() == [1, 2, 3]


def test_move_up_then_down_restores_order():
    app = create_app(TestConfig)
    with app.app_context():
        _, second, _ = _seed("A", "B", "C")
        move_step(second, "up")
        assert _titles() == ["B", "A", "C"]
        move_step(second, "down")
        assert _titles() == ["A", "B", "C"]
        assert _numbers() == [1, 2, 3]


def test_move_at_boundaries_is_a_noop():
    app = create_app(TestConfig)
    with app.app_context():
        first, _, last = _seed("A", "B", "C")
        assert move_step(first, "up") is False
        assert move_step(last, "down") is False
        assert _titles() == ["A", "B", "C"]
        assert _numbers() == [1, 2, 3]


def test_move_rejects_unknown_direction():
    app = create_app(TestConfig)
    with app.app_context():
        first, _ = _seed("A", "B")
        with pytest.raises(ValueError):
            move_step(first, "sideways")


def test_delete_closes_the_gap():
    app = create_app(TestConfig)
    with app.app_context():
        _, second, _, _ = _seed("A", "B", "C", "D")
        changed = delete_step(second)
        assert changed == 2
        assert _titles() == ["A", "C", "D"]
        assert _numbers() == [1, 2, 3]
        assert AdmissionStep.query.count() == 3


def test_delete_last_then_create_reuses_next_number():
    app = create_app(TestConfig)
    with app.app_context():
        _, _, third = _seed("A", "B", "C")
        assert delete_step(third) == 0
        row = create_step(title="D")
        assert row.step_number == 3
        assert _titles() == ["A", "B", "D"]


def test_move_repairs_legacy_duplicates_before_swapping():
    app = create_app(TestConfig)
    with app.app_context():
        db.session.add_all(
            [
                AdmissionStep(step_number=1, title="A"),
                AdmissionStep(step_number=3, title="B"),
                AdmissionStep(step_number=3, title="C"),
            ]
        )
        db.session.commit()
        assert sequence_problems() == ["duplicate step_number 3", "missing step_number 2"]

        c = AdmissionStep.query.filter_by(title="C").one()
        assert move_step(c, "up") is True
        assert _titles() == ["A", "C", "B"]
        assert _numbers() == [1, 2, 3]
        assert sequence_problems() == []


def test_move_step_to_inserts_and_clamps():
    app = create_app(TestConfig)
    with app.app_context():
        a, _, _, d = _seed("A", "B", "C", "D")
        move_step_to(d, 1)
        assert _titles() == ["D", "A", "B", "C"]
        assert _numbers() == [1, 2, 3, 4]

        move_step_to(a, 99)
        assert _titles() == ["D", "B", "C", "A"]
        assert _numbers() == [1, 2, 3, 4]

        assert move_step_to(a, 4) == 0


def test_renumber_fixes_gaps():
    app = create_app(TestConfig)
    with app.app_context():
        db.session.add_all(
            [
                AdmissionStep(step_number=2, title="A"),
                AdmissionStep(step_number=5, title="B"),
                AdmissionStep(step_number=9, title="C"),
            ]
        )
        db.session.commit()
        assert "out of range step_number 9" in sequence_problems()

        assert renumber_steps() == 3
        db.session.commit()
        assert _numbers() == [1, 2, 3]
        assert _titles() == ["A", "B", "C"]
        assert renumber_steps() == 0


def test_inactive_steps_keep_their_slot_but_stay_hidden():
    app = create_app(TestConfig)
    with app.app_context():
        create_step(title="A")
        create_step(title="B", is_active=False)
        create_step(title="C")
        assert _numbers() == [1, 2, 3]
        assert [row.title for row in get_admission_process()] == ["A", "C"]


def _failing_commit():
    return mock.patch.object(
        db.session, "commit", side_effect=OperationalError("COMMIT", {}, Exception("database is locked"))
    )


def test_failed_swap_keeps_previous_numbering():
    app = create_app(TestConfig)
    with app.app_context():
        _, second, _ = _seed("A", "B", "C")
        with _failing_commit():
            with pytest.raises(OperationalError):
                move_step(second, "up")
        db.session.expire_all()
        assert [(row.title, row.step_number) for row in list_steps()] == [("A", 1), ("B", 2), ("C", 3)]


def test_failed_delete_keeps_row_and_numbering():
    app = create_app(TestConfig)
    with app.app_context():
        first, _, _ = _seed("A", "B", "C")
        with _failing_commit():
            with pytest.raises(OperationalError):
                delete_step(first)
        db.session.expire_all()
        assert AdmissionStep.query.count() == 3
        assert [(row.title, row.step_number) for row in list_steps()] == [("A", 1), ("B", 2), ("C", 3)]


def test_delete_after_reorder_renumbers_only_later_steps():
    app = create_app(TestConfig)
    with app.app_context():
        a, b, _ = _seed("A", "B", "C")
        move_step(b, "up")
        assert [(row.title, row.step_number) for row in list_steps()] == [("B", 1), ("A", 2), ("C", 3)]

        assert delete_step(a) == 1
        assert [(row.title, row.step_number) for row in list_steps()] == [("B", 1), ("C", 2)]


def test_delete_in_middle_leaves_earlier_steps_untouched():
    app = create_app(TestConfig)
    with app.app_context():
        a, _, c, _, e = _seed("A", "B", "C", "D", "E")
        move_step(e, "up")
        move_step(a, "down")
        assert _titles() == ["B", "A", "C", "E", "D"]

        delete_step(c)
        assert [(row.title, row.step_number) for row in list_steps()] == [("B", 1), ("A", 2), ("E", 3), ("D", 4)]
        assert sequence_problems() == []
