from app.extensions import db
from app.models import AboutUs, ContactInfo, ContactSubmission, Course, Faculty, HeroSection, Testimonial, UserProfile
from app.utils.admission_steps import list_steps
from app.utils.contact_triage import status_counts


def get_courses():
    return Course.query.filter(Course.is_active.is_(True)).order_by(Course.id.asc()).all()


def get_faculty():
    return Faculty.query.filter(Faculty.is_active.is_(True)).order_by(Faculty.id.asc()).all()


def get_testimonials(featured_only=False, limit=None):
    query = Testimonial.query
    if featured_only:
        query = query.filter(Testimonial.is_featured.is_(True))
    query = query.order_by(Testimonial.created_at.desc(), Testimonial.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def get_admission_process():
    return list_steps(active_only=True)


def get_hero_section():
    return HeroSection.query.filter(HeroSection.is_active.is_(True)).order_by(HeroSection.id.asc()).first()


def get_about_us():
    return AboutUs.query.order_by(AboutUs.id.asc()).first()


def get_contact_info():
    return ContactInfo.query.order_by(ContactInfo.id.asc()).first()


def _get_or_create(model, **defaults):
    row = model.query.order_by(model.id.asc()).first()
    if row is None:
        row = model(**defaults)
        db.session.add(row)
        db.session.commit()
    return row


def get_or_create_hero_section():
    return _get_or_create(
        HeroSection,
        title="Shape your future with expert coaching",
        subtitle="Courses, mentors and results",
        cta_text="Explore courses",
        cta_link="/courses",
        is_active=True,
    )


def get_or_create_about_us():
    return _get_or_create(AboutUs, achievements=[], faculty_count=0, students_placed=0, years_experience=0)


def get_or_create_contact_info():
    return _get_or_create(ContactInfo, social_media=[])


def dashboard_counts():
    return {
        "courses": Course.query.count(),
        "faculty": Faculty.query.count(),
        "testimonials": Testimonial.query.count(),
        "users": UserProfile.query.count(),
        "contacts": ContactSubmission.query.count(),
        "contacts_by_status": status_counts(),
    }


def split_lines(raw):
    """Textarea input -> list of non-empty stripped lines."""
    return [line.strip() for line in (raw or "").splitlines() if line.strip()]


def join_lines(values):
    return "\n".join(values or [])


def parse_social_links(raw):
    """Parse ``platform | url | icon`` lines; icon defaults to the lower-cased platform."""
    links = []
    for line in split_lines(raw):
        parts = [part.strip() for part in line.split("|")]
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise ValueError(f"Invalid social link line: {line!r} (expected 'platform | url | icon').")
        icon = parts[2] if len(parts) > 2 and parts[2] else parts[0].lower()
        links.append({"platform": parts[0], "url": parts[1], "icon": icon})
    return links


def format_social_links(links):
    return "\n".join(f"{item.get('platform', '')} | {item.get('url', '')} | {item.get('icon', '')}" for item in links or [])
