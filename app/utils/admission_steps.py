"""Admission-step ordering.

Every row of ``admission_process`` carries a ``step_number``; across the table
those numbers form the dense sequence 1..N. Each mutation below (create,
swap, move, delete) runs in a single transaction so a failure leaves the
previous numbering intact.
"""

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models import AdmissionStep


DIRECTIONS = ("up", "down")


def list_steps(active_only=False):
    query = AdmissionStep.query
    if active_only:
        query = query.filter(AdmissionStep.is_active.is_(True))
    # id breaks ties left behind by legacy drift.
    return query.order_by(AdmissionStep.step_number.asc(), AdmissionStep.id.asc()).all()


def next_step_number():
    current = db.session.query(func.max(AdmissionStep.step_number)).scalar()
    return (current or 0) + 1


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


def create_step(title, description=None, icon=None, is_active=True, owner_id=None):
    row = AdmissionStep(
        step_number=next_step_number(),
        title=title,
        description=description,
        icon=icon,
        is_active=is_active,
        owner_id=owner_id,
    )
    db.session.add(row)
    _commit()
    return row


def move_step(step, direction):
    """Swap ``step`` with its neighbour. Returns False at either end of the list."""
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown direction: {direction!r}")

    steps = list_steps()
    index = next((i for i, row in enumerate(steps) if row.id == step.id), None)
    if index is None:
        raise LookupError(f"Admission step #{step.id} not found.")

    if direction == "up" and index == 0:
        return False
    if direction == "down" and index == len(steps) - 1:
        return False

    # Close gaps and duplicates first so the swap always exchanges distinct numbers.
    _apply_order(steps)
    neighbor = steps[index - 1] if direction == "up" else steps[index + 1]
    step = steps[index]
    step.step_number, neighbor.step_number = neighbor.step_number, step.step_number
    _commit()
    return True


def _apply_order(ordered):
    changed = 0
    for position, row in enumerate(ordered, start=1):
        if row.step_number != position:
            row.step_number = position
            changed += 1
    return changed


def move_step_to(step, position):
    """Place ``step`` at ``position`` (clamped to 1..N) and close the sequence around it."""
    steps = [row for row in list_steps() if row.id != step.id]
    target = min(max(int(position), 1), len(steps) + 1)
    steps.insert(target - 1, step)
    changed = _apply_order(steps)
    if changed:
        _commit()
    return changed


def renumber_steps():
    """Reassign 1..N following the current order; only rows whose number changes are written."""
    return _apply_order(list_steps())


def delete_step(step):
    db.session.delete(step)
    try:
        db.session.flush()
        changed = renumber_steps()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    _commit()
    return changed


def sequence_problems(steps=None):
    """Describe gaps and duplicates in the stored numbering (empty list when dense)."""
    steps = list_steps() if steps is None else steps
    numbers = [row.step_number for row in steps]
    problems = []
    seen = set()
    for number in numbers:
        if number in seen:
            problems.append(f"duplicate step_number {number}")
        seen.add(number)
    expected = set(range(1, len(numbers) + 1))
    for missing in sorted(expected - seen):
        problems.append(f"missing step_number {missing}")
    for extra in sorted(seen - expected):
        problems.append(f"out of range step_number {extra}")
    return problems
