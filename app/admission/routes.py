from flask import Blueprint, current_app, flash, redirect, render_template, url_for
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from app.admission.forms import AdmissionStepForm, MoveStepForm
from app.extensions import db
from app.models import AdmissionStep
from app.utils.admission_steps import create_step, delete_step, list_steps, move_step, move_step_to, sequence_problems
from app.utils.audit import add_audit_log
from app.utils.authz import role_required


admission_bp = Blueprint("admission", __name__, url_prefix="/admin/admission")


def _clean(value):
    return (value or "").strip() or None


@admission_bp.route("/")
@login_required
@role_required("admin")
def steps_list():
    steps = list_steps()
    return render_template(
        "admission/steps.html",
        steps=steps,
        problems=sequence_problems(steps),
    )


@admission_bp.route("/new", methods=["GET", "POST"])
@login_required
@role_required("admin")
def steps_new():
    form = AdmissionStepForm()
    del form.step_number
    if form.validate_on_submit():
        try:
            row = create_step(
                title=form.title.data.strip(),
                description=_clean(form.description.data),
                icon=_clean(form.icon.data),
                is_active=bool(form.is_active.data),
                owner_id=current_user.id,
            )
        except SQLAlchemyError as exc:
            current_app.logger.error("Admission step create failed: %s", exc)
            flash("Could not create the step. Please try again.", "danger")
        else:
            add_audit_log(current_user.id, "admission_step_create", f"Step #{row.id} at position {row.step_number}")
            flash("Admission step created.", "success")
            return redirect(url_for("admission.steps_list"))
    return render_template("admission/step_form.html", form=form, title="New admission step")


@admission_bp.route("/<int:step_id>/edit", methods=["GET", "POST"])
@login_required
@role_required("admin")
def steps_edit(step_id):
    row = AdmissionStep.query.get_or_404(step_id)
    form = AdmissionStepForm(obj=row)
    if form.validate_on_submit():
        old_position = row.step_number
        row.title = form.title.data.strip()
        row.description = _clean(form.description.data)
        row.icon = _clean(form.icon.data)
        row.is_active = bool(form.is_active.data)
        try:
            # Repositioning commits the field edits together with the renumbering.
            if form.step_number.data and form.step_number.data != old_position:
                move_step_to(row, form.step_number.data)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error("Admission step update failed: %s", exc)
            flash("Could not save the step. Please try again.", "danger")
        else:
            add_audit_log(current_user.id, "admission_step_update", f"Step #{row.id} at position {row.step_number}")
            flash("Admission step updated.", "success")
            return redirect(url_for("admission.steps_list"))
    return render_template("admission/step_form.html", form=form, title="Edit admission step", step=row)


@admission_bp.route("/<int:step_id>/move", methods=["POST"])
@login_required
@role_required("admin")
def steps_move(step_id):
    row = AdmissionStep.query.get_or_404(step_id)
    form = MoveStepForm()
    if not form.validate_on_submit():
        flash("Invalid move request.", "warning")
        return redirect(url_for("admission.steps_list"))

    try:
        moved = move_step(row, form.direction.data)
    except SQLAlchemyError as exc:
        current_app.logger.error("Admission step move failed: %s", exc)
        flash("Failed to move step.", "danger")
        return redirect(url_for("admission.steps_list"))

    if moved:
        add_audit_log(current_user.id, "admission_step_move", f"Step #{row.id} {form.direction.data} to {row.step_number}")
        flash("Step moved.", "success")
    else:
        flash("Step is already at the edge of the list.", "info")
    return redirect(url_for("admission.steps_list"))


@admission_bp.route("/<int:step_id>/delete", methods=["POST"])
@login_required
@role_required("admin")
def steps_delete(step_id):
    row = AdmissionStep.query.get_or_404(step_id)
    title = row.title
    try:
        delete_step(row)
    except SQLAlchemyError as exc:
        current_app.logger.error("Admission step delete failed: %s", exc)
        flash("Failed to delete step.", "danger")
        return redirect(url_for("admission.steps_list"))

    add_audit_log(current_user.id, "admission_step_delete", f"Step #{step_id} {title}")
    flash("Admission step deleted.", "success")
    return redirect(url_for("admission.steps_list"))
