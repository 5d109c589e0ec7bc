from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from app.admin.forms import (
    AboutUsForm,
    ContactInfoForm,
    CourseForm,
    FacultyForm,
    HeroSectionForm,
    TestimonialForm,
    UserRoleForm,
)
from app.extensions import db
from app.models import USER_ROLES, Course, Faculty, Testimonial, UserProfile
from app.utils.audit import add_audit_log
from app.utils.authz import role_required
from app.utils.content import (
    dashboard_counts,
    format_social_links,
    get_or_create_about_us,
    get_or_create_contact_info,
    get_or_create_hero_section,
    join_lines,
    parse_social_links,
    split_lines,
)
from app.utils.files import save_image_upload


admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

SAVE_FAILED = "Could not save changes. Please try again."


def _clean(value):
    return (value or "").strip() or None


def _image_url(form, url_field="image_url", file_field="image_file"):
    """Uploaded file wins over the URL field; raises ValueError on a rejected upload."""
    upload = getattr(form, file_field).data
    if upload:
        saved_url = save_image_upload(upload)
        if saved_url:
            return saved_url
    return _clean(getattr(form, url_field).data)


def _commit_or_flash(success_message):
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Admin save failed: %s", exc)
        flash(SAVE_FAILED, "danger")
        return False
    flash(success_message, "success")
    return True


@admin_bp.route("/")
@login_required
@role_required("admin")
def dashboard():
    return render_template("admin/dashboard.html", counts=dashboard_counts())


# ----------------------------------------------------------------- users


@admin_bp.route("/users")
@login_required
@role_required("admin")
def users_list():
    q = (request.args.get("q") or "").strip()
    role = (request.args.get("role") or "").strip()
    status = (request.args.get("status") or "").strip()

    query = UserProfile.query
    if q:
        like_q = f"%{q}%"
        query = query.filter(or_(UserProfile.name.ilike(like_q), UserProfile.email.ilike(like_q)))
    if role in USER_ROLES:
        query = query.filter(UserProfile.role == role)
    else:
        role = ""
    if status == "active":
        query = query.filter(UserProfile.is_active.is_(True))
    elif status == "inactive":
        query = query.filter(UserProfile.is_active.is_(False))
    else:
        status = ""

    users = query.order_by(UserProfile.created_at.desc(), UserProfile.id.desc()).all()
    return render_template("admin/users_list.html", users=users, q=q, role=role, status=status, role_form=UserRoleForm())


@admin_bp.route("/users/<int:user_id>/role", methods=["POST"])
@login_required
@role_required("admin")
def users_set_role(user_id):
    row = UserProfile.query.get_or_404(user_id)
    form = UserRoleForm()
    if not form.validate_on_submit():
        flash("Invalid role.", "warning")
        return redirect(url_for("admin.users_list"))
    if row.id == current_user.id and form.role.data != "admin":
        flash("You cannot remove your own admin role.", "warning")
        return redirect(url_for("admin.users_list"))

    row.role = form.role.data
    if _commit_or_flash("User role updated successfully."):
        add_audit_log(current_user.id, "user_role", f"{row.email} -> {row.role}")
    return redirect(url_for("admin.users_list"))


@admin_bp.route("/users/<int:user_id>/toggle-active", methods=["POST"])
@login_required
@role_required("admin")
def users_toggle_active(user_id):
    row = UserProfile.query.get_or_404(user_id)
    if row.id == current_user.id:
        flash("You cannot deactivate your own account.", "warning")
        return redirect(url_for("admin.users_list"))

    row.is_active = not row.is_active
    label = "activated" if row.is_active else "deactivated"
    if _commit_or_flash(f"User {label}."):
        add_audit_log(current_user.id, "user_status", f"{row.email} {label}")
    return redirect(url_for("admin.users_list"))


# ----------------------------------------------------------------- courses


COURSE_COLUMNS = [("Title", "title"), ("Duration", "duration"), ("Fee", "fee"), ("Active", "is_active")]


def _fill_course(row, form):
    row.title = form.title.data.strip()
    row.description = form.description.data.strip()
    row.duration = _clean(form.duration.data)
    row.fee = form.fee.data or 0.0
    row.features = split_lines(form.features.data)
    row.image_url = _image_url(form)
    row.is_active = bool(form.is_active.data)


@admin_bp.route("/courses")
@login_required
@role_required("admin")
def courses_list():
    rows = Course.query.order_by(Course.id.asc()).all()
    return render_template(
        "admin/content_list.html",
        title="Courses",
        rows=rows,
        columns=COURSE_COLUMNS,
        id_arg="course_id",
        new_endpoint="admin.courses_new",
        edit_endpoint="admin.courses_edit",
        delete_endpoint="admin.courses_delete",
    )


@admin_bp.route("/courses/new", methods=["GET", "POST"])
@login_required
@role_required("admin")
def courses_new():
    form = CourseForm()
    if form.validate_on_submit():
        row = Course(owner_id=current_user.id)
        try:
            _fill_course(row, form)
        except ValueError as exc:
            flash(str(exc), "warning")
            return render_template("admin/form.html", form=form, title="New course", back_url=url_for("admin.courses_list"))
        db.session.add(row)
        if _commit_or_flash("Course created."):
            add_audit_log(current_user.id, "course_create", f"Course #{row.id} {row.title}")
            return redirect(url_for("admin.courses_list"))
    return render_template("admin/form.html", form=form, title="New course", back_url=url_for("admin.courses_list"))


@admin_bp.route("/courses/<int:course_id>/edit", methods=["GET", "POST"])
@login_required
@role_required("admin")
def courses_edit(course_id):
    row = Course.query.get_or_404(course_id)
    form = CourseForm(obj=row)
    if request.method == "GET":
        form.features.data = join_lines(row.features)
    if form.validate_on_submit():
        try:
            _fill_course(row, form)
        except ValueError as exc:
            flash(str(exc), "warning")
            return render_template("admin/form.html", form=form, title="Edit course", back_url=url_for("admin.courses_list"))
        if _commit_or_flash("Course updated."):
            add_audit_log(current_user.id, "course_update", f"Course #{row.id} {row.title}")
            return redirect(url_for("admin.courses_list"))
    return render_template("admin/form.html", form=form, title="Edit course", back_url=url_for("admin.courses_list"))


@admin_bp.route("/courses/<int:course_id>/delete", methods=["POST"])
@login_required
@role_required("admin")
def courses_delete(course_id):
    row = Course.query.get_or_404(course_id)
    title = row.title
    db.session.delete(row)
    if _commit_or_flash("Course deleted."):
        add_audit_log(current_user.id, "course_delete", f"Course #{course_id} {title}")
    return redirect(url_for("admin.courses_list"))


# ----------------------------------------------------------------- faculty


FACULTY_COLUMNS = [("Name", "name"), ("Designation", "designation"), ("Experience", "experience_years"), ("Active", "is_active")]


def _fill_faculty(row, form):
    row.name = form.name.data.strip()
    row.designation = _clean(form.designation.data)
    row.qualification = _clean(form.qualification.data)
    row.experience_years = form.experience_years.data or 0
    row.subjects = split_lines(form.subjects.data)
    row.bio = _clean(form.bio.data)
    row.image_url = _image_url(form)
    row.is_active = bool(form.is_active.data)


@admin_bp.route("/faculty")
@login_required
@role_required("admin")
def faculty_list():
    rows = Faculty.query.order_by(Faculty.id.asc()).all()
    return render_template(
        "admin/content_list.html",
        title="Faculty",
        rows=rows,
        columns=FACULTY_COLUMNS,
        id_arg="faculty_id",
        new_endpoint="admin.faculty_new",
        edit_endpoint="admin.faculty_edit",
        delete_endpoint="admin.faculty_delete",
    )


@admin_bp.route("/faculty/new", methods=["GET", "POST"])
@login_required
@role_required("admin")
def faculty_new():
    form = FacultyForm()
    if form.validate_on_submit():
        row = Faculty(owner_id=current_user.id)
        try:
            _fill_faculty(row, form)
        except ValueError as exc:
            flash(str(exc), "warning")
            return render_template("admin/form.html", form=form, title="New faculty member", back_url=url_for("admin.faculty_list"))
        db.session.add(row)
        if _commit_or_flash("Faculty member created."):
            add_audit_log(current_user.id, "faculty_create", f"Faculty #{row.id} {row.name}")
            return redirect(url_for("admin.faculty_list"))
    return render_template("admin/form.html", form=form, title="New faculty member", back_url=url_for("admin.faculty_list"))


@admin_bp.route("/faculty/<int:faculty_id>/edit", methods=["GET", "POST"])
@login_required
@role_required("admin")
def faculty_edit(faculty_id):
    row = Faculty.query.get_or_404(faculty_id)
    form = FacultyForm(obj=row)
    if request.method == "GET":
        form.subjects.data = join_lines(row.subjects)
    if form.validate_on_submit():
        try:
            _fill_faculty(row, form)
        except ValueError as exc:
            flash(str(exc), "warning")
            return render_template("admin/form.html", form=form, title="Edit faculty member", back_url=url_for("admin.faculty_list"))
        if _commit_or_flash("Faculty member updated."):
            add_audit_log(current_user.id, "faculty_update", f"Faculty #{row.id} {row.name}")
            return redirect(url_for("admin.faculty_list"))
    return render_template("admin/form.html", form=form, title="Edit faculty member", back_url=url_for("admin.faculty_list"))


@admin_bp.route("/faculty/<int:faculty_id>/delete", methods=["POST"])
@login_required
@role_required("admin")
def faculty_delete(faculty_id):
    row = Faculty.query.get_or_404(faculty_id)
    name = row.name
    db.session.delete(row)
    if _commit_or_flash("Faculty member deleted."):
        add_audit_log(current_user.id, "faculty_delete", f"Faculty #{faculty_id} {name}")
    return redirect(url_for("admin.faculty_list"))


# ----------------------------------------------------------------- testimonials


TESTIMONIAL_COLUMNS = [("Student", "student_name"), ("Course", "course"), ("Rating", "rating"), ("Featured", "is_featured")]


def _fill_testimonial(row, form):
    row.student_name = form.student_name.data.strip()
    row.course = _clean(form.course.data)
    row.rating = form.rating.data
    row.message = form.message.data.strip()
    row.image_url = _image_url(form)
    row.is_featured = bool(form.is_featured.data)


@admin_bp.route("/testimonials")
@login_required
@role_required("admin")
def testimonials_list():
    rows = Testimonial.query.order_by(Testimonial.created_at.desc(), Testimonial.id.desc()).all()
    return render_template(
        "admin/content_list.html",
        title="Testimonials",
        rows=rows,
        columns=TESTIMONIAL_COLUMNS,
        id_arg="testimonial_id",
        new_endpoint="admin.testimonials_new",
        edit_endpoint="admin.testimonials_edit",
        delete_endpoint="admin.testimonials_delete",
    )


@admin_bp.route("/testimonials/new", methods=["GET", "POST"])
@login_required
@role_required("admin")
def testimonials_new():
    form = TestimonialForm()
    if form.validate_on_submit():
        row = Testimonial(owner_id=current_user.id)
        try:
            _fill_testimonial(row, form)
        except ValueError as exc:
            flash(str(exc), "warning")
            return render_template("admin/form.html", form=form, title="New testimonial", back_url=url_for("admin.testimonials_list"))
        db.session.add(row)
        if _commit_or_flash("Testimonial created."):
            add_audit_log(current_user.id, "testimonial_create", f"Testimonial #{row.id} {row.student_name}")
            return redirect(url_for("admin.testimonials_list"))
    return render_template("admin/form.html", form=form, title="New testimonial", back_url=url_for("admin.testimonials_list"))


@admin_bp.route("/testimonials/<int:testimonial_id>/edit", methods=["GET", "POST"])
@login_required
@role_required("admin")
def testimonials_edit(testimonial_id):
    row = Testimonial.query.get_or_404(testimonial_id)
    form = TestimonialForm(obj=row)
    if form.validate_on_submit():
        try:
            _fill_testimonial(row, form)
        except ValueError as exc:
            flash(str(exc), "warning")
            return render_template("admin/form.html", form=form, title="Edit testimonial", back_url=url_for("admin.testimonials_list"))
        if _commit_or_flash("Testimonial updated."):
            add_audit_log(current_user.id, "testimonial_update", f"Testimonial #{row.id} {row.student_name}")
            return redirect(url_for("admin.testimonials_list"))
    return render_template("admin/form.html", form=form, title="Edit testimonial", back_url=url_for("admin.testimonials_list"))


@admin_bp.route("/testimonials/<int:testimonial_id>/delete", methods=["POST"])
@login_required
@role_required("admin")
def testimonials_delete(testimonial_id):
    row = Testimonial.query.get_or_404(testimonial_id)
    name = row.student_name
    db.session.delete(row)
    if _commit_or_flash("Testimonial deleted."):
        add_audit_log(current_user.id, "testimonial_delete", f"Testimonial #{testimonial_id} {name}")
    return redirect(url_for("admin.testimonials_list"))


# ----------------------------------------------------------------- single-row sections


@admin_bp.route("/hero", methods=["GET", "POST"])
@login_required
@role_required("admin")
def hero_edit():
    row = get_or_create_hero_section()
    form = HeroSectionForm(obj=row)
    if form.validate_on_submit():
        try:
            row.background_image_url = _image_url(form, "background_image_url", "background_image_file")
        except ValueError as exc:
            flash(str(exc), "warning")
            return render_template("admin/form.html", form=form, title="Hero section")
        row.title = form.title.data.strip()
        row.subtitle = _clean(form.subtitle.data)
        row.description = _clean(form.description.data)
        row.cta_text = _clean(form.cta_text.data)
        row.cta_link = _clean(form.cta_link.data)
        row.is_active = bool(form.is_active.data)
        if _commit_or_flash("Hero section saved."):
            add_audit_log(current_user.id, "hero_update", row.title)
            return redirect(url_for("admin.hero_edit"))
    return render_template("admin/form.html", form=form, title="Hero section")


@admin_bp.route("/about", methods=["GET", "POST"])
@login_required
@role_required("admin")
def about_edit():
    row = get_or_create_about_us()
    form = AboutUsForm(obj=row)
    if request.method == "GET":
        form.achievements.data = join_lines(row.achievements)
    if form.validate_on_submit():
        row.mission = _clean(form.mission.data)
        row.vision = _clean(form.vision.data)
        row.history = _clean(form.history.data)
        row.achievements = split_lines(form.achievements.data)
        row.faculty_count = form.faculty_count.data or 0
        row.students_placed = form.students_placed.data or 0
        row.years_experience = form.years_experience.data or 0
        if _commit_or_flash("About us saved."):
            add_audit_log(current_user.id, "about_update")
            return redirect(url_for("admin.about_edit"))
    return render_template("admin/form.html", form=form, title="About us")


@admin_bp.route("/contact-info", methods=["GET", "POST"])
@login_required
@role_required("admin")
def contact_info_edit():
    row = get_or_create_contact_info()
    form = ContactInfoForm(obj=row)
    if request.method == "GET":
        form.social_media.data = format_social_links(row.social_media)
    if form.validate_on_submit():
        try:
            social_links = parse_social_links(form.social_media.data)
            image_url = _image_url(form)
        except ValueError as exc:
            flash(str(exc), "warning")
            return render_template("admin/form.html", form=form, title="Contact information")
        row.address = _clean(form.address.data)
        row.city = _clean(form.city.data)
        row.state = _clean(form.state.data)
        row.postal_code = _clean(form.postal_code.data)
        row.country = _clean(form.country.data)
        row.phone = _clean(form.phone.data)
        row.email = (_clean(form.email.data) or "").lower() or None
        row.office_hours = _clean(form.office_hours.data)
        row.map_url = _clean(form.map_url.data)
        row.social_media = social_links
        row.image_url = image_url
        if _commit_or_flash("Contact information saved."):
            add_audit_log(current_user.id, "contact_info_update")
            return redirect(url_for("admin.contact_info_edit"))
    return render_template("admin/form.html", form=form, title="Contact information")
