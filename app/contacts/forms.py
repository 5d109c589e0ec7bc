from flask_wtf import FlaskForm
from wtforms import SelectField, SubmitField, TextAreaField
from wtforms.validators import DataRequired, Length

from app.utils.contact_triage import STATUS_LABELS


class StatusForm(FlaskForm):
    status = SelectField("Status", choices=list(STATUS_LABELS.items()), validators=[DataRequired()])
    submit = SubmitField("Update status")


class ReplyForm(FlaskForm):
    reply = TextAreaField("Reply", validators=[DataRequired(), Length(max=10000)])
    submit = SubmitField("Send reply")
