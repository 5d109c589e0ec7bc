from flask import Blueprint, current_app, flash, redirect, render_template, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import limiter
from app.public.forms import ContactForm
from app.utils.contact_triage import create_submission, notify_new_submission
from app.utils.content import (
    get_about_us,
    get_admission_process,
    get_contact_info,
    get_courses,
    get_faculty,
    get_hero_section,
    get_testimonials,
)


public_bp = Blueprint("public", __name__)


@public_bp.route("/")
def home():
    courses = get_courses()
    testimonials = get_testimonials(featured_only=True, limit=6) or get_testimonials(limit=6)
    return render_template(
        "public/home.html",
        hero=get_hero_section(),
        courses=courses[:3],
        testimonials=testimonials,
        about=get_about_us(),
    )


@public_bp.route("/about")
def about():
    return render_template("public/about.html", about=get_about_us(), faculty=get_faculty())


@public_bp.route("/courses")
def courses():
    return render_template("public/courses.html", courses=get_courses())


@public_bp.route("/admission")
def admission():
    return render_template("public/admission.html", steps=get_admission_process(), contact_info=get_contact_info())


@public_bp.route("/contact", methods=["GET", "POST"])
@limiter.limit("5 per minute", methods=["POST"])
def contact():
    form = ContactForm()
    if form.validate_on_submit():
        try:
            submission = create_submission(
                first_name=form.first_name.data.strip(),
                last_name=form.last_name.data.strip(),
                email=form.email.data.strip().lower(),
                phone=(form.phone.data or "").strip() or None,
                subject=form.subject.data.strip(),
                message=form.message.data.strip(),
            )
        except SQLAlchemyError as exc:
            current_app.logger.error("Contact form submission failed: %s", exc)
            flash("Failed to submit form. Please try again.", "danger")
            return render_template("public/contact.html", form=form, contact_info=get_contact_info())

        notify_new_submission(submission)
        flash("Thank you for your message! We'll get back to you soon.", "success")
        return redirect(url_for("public.contact"))

    if form.errors:
        flash("Please fill in all required fields.", "warning")
    return render_template("public/contact.html", form=form, contact_info=get_contact_info())
