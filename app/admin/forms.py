from urllib.parse import urlparse

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField, FileSize
from wtforms import BooleanField, FloatField, IntegerField, SelectField, StringField, SubmitField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional, ValidationError

from app.models import USER_ROLES


IMAGE_EXTENSIONS = ["png", "jpg", "jpeg", "webp"]


def _optional_url(form, field):
    value = (field.data or "").strip()
    if not value or value.startswith("/"):
        return
    parsed = urlparse(value)
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Invalid URL: use a full http(s):// link or a site path starting with /")


def _image_upload_field(label):
    return FileField(
        label,
        validators=[Optional(), FileAllowed(IMAGE_EXTENSIONS, "Invalid image format"), FileSize(max_size=5 * 1024 * 1024)],
    )


class CourseForm(FlaskForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=255)])
    description = TextAreaField("Description", validators=[DataRequired(), Length(max=5000)])
    duration = StringField("Duration", validators=[Optional(), Length(max=120)])
    fee = FloatField("Fee", validators=[Optional(), NumberRange(min=0)], default=0)
    features = TextAreaField("Features (one per line)", validators=[Optional(), Length(max=5000)])
    image_url = StringField("Image URL", validators=[Optional(), Length(max=500), _optional_url])
    image_file = _image_upload_field("Image (upload)")
    is_active = BooleanField("Active", default=True)
    submit = SubmitField("Save")


class FacultyForm(FlaskForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=255)])
    designation = StringField("Designation", validators=[Optional(), Length(max=255)])
    qualification = StringField("Qualification", validators=[Optional(), Length(max=255)])
    experience_years = IntegerField("Experience (years)", validators=[Optional(), NumberRange(min=0, max=80)], default=0)
    subjects = TextAreaField("Subjects (one per line)", validators=[Optional(), Length(max=2000)])
    bio = TextAreaField("Bio", validators=[Optional(), Length(max=5000)])
    image_url = StringField("Photo URL", validators=[Optional(), Length(max=500), _optional_url])
    image_file = _image_upload_field("Photo (upload)")
    is_active = BooleanField("Active", default=True)
    submit = SubmitField("Save")


class TestimonialForm(FlaskForm):
    student_name = StringField("Student name", validators=[DataRequired(), Length(max=255)])
    course = StringField("Course", validators=[Optional(), Length(max=255)])
    rating = IntegerField("Rating (1-5)", validators=[DataRequired(), NumberRange(min=1, max=5)], default=5)
    message = TextAreaField("Message", validators=[DataRequired(), Length(max=5000)])
    image_url = StringField("Photo URL", validators=[Optional(), Length(max=500), _optional_url])
    image_file = _image_upload_field("Photo (upload)")
    is_featured = BooleanField("Featured on home page", default=False)
    submit = SubmitField("Save")


class HeroSectionForm(FlaskForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=255)])
    subtitle = StringField("Subtitle", validators=[Optional(), Length(max=255)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=2000)])
    cta_text = StringField("Button text", validators=[Optional(), Length(max=120)])
    cta_link = StringField("Button link", validators=[Optional(), Length(max=500), _optional_url])
    background_image_url = StringField("Background image URL", validators=[Optional(), Length(max=500), _optional_url])
    background_image_file = _image_upload_field("Background image (upload)")
    is_active = BooleanField("Show on home page", default=True)
    submit = SubmitField("Save")


class AboutUsForm(FlaskForm):
    mission = TextAreaField("Mission", validators=[Optional(), Length(max=5000)])
    vision = TextAreaField("Vision", validators=[Optional(), Length(max=5000)])
    history = TextAreaField("History", validators=[Optional(), Length(max=10000)])
    achievements = TextAreaField("Achievements (one per line)", validators=[Optional(), Length(max=5000)])
    faculty_count = IntegerField("Faculty count", validators=[Optional(), NumberRange(min=0)], default=0)
    students_placed = IntegerField("Students placed", validators=[Optional(), NumberRange(min=0)], default=0)
    years_experience = IntegerField("Years of experience", validators=[Optional(), NumberRange(min=0)], default=0)
    submit = SubmitField("Save")


class ContactInfoForm(FlaskForm):
    address = StringField("Address", validators=[Optional(), Length(max=255)])
    city = StringField("City", validators=[Optional(), Length(max=120)])
    state = StringField("State", validators=[Optional(), Length(max=120)])
    postal_code = StringField("Postal code", validators=[Optional(), Length(max=20)])
    country = StringField("Country", validators=[Optional(), Length(max=120)])
    phone = StringField("Phone", validators=[Optional(), Length(max=80)])
    email = StringField("Email", validators=[Optional(), Email(), Length(max=255)])
    office_hours = StringField("Office hours", validators=[Optional(), Length(max=255)])
    map_url = StringField("Map embed URL", validators=[Optional(), Length(max=1000), _optional_url])
    social_media = TextAreaField("Social links (platform | url | icon, one per line)", validators=[Optional(), Length(max=5000)])
    image_url = StringField("Image URL", validators=[Optional(), Length(max=500), _optional_url])
    image_file = _image_upload_field("Image (upload)")
    submit = SubmitField("Save")


class UserRoleForm(FlaskForm):
    role = SelectField("Role", choices=[(r, r.capitalize()) for r in USER_ROLES], validators=[DataRequired()])
    submit = SubmitField("Update role")
