from flask_wtf import FlaskForm
from wtforms import BooleanField, HiddenField, IntegerField, StringField, SubmitField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange, Optional

from app.utils.admission_steps import DIRECTIONS


class AdmissionStepForm(FlaskForm):
    title = StringField("Title", validators=[DataRequired(), Length(max=255)])
    description = TextAreaField("Description", validators=[Optional(), Length(max=5000)])
    icon = StringField("Icon", validators=[Optional(), Length(max=80)])
    step_number = IntegerField("Position", validators=[Optional(), NumberRange(min=1)])
    is_active = BooleanField("Visible on the admission page", default=True)
    submit = SubmitField("Save")


class MoveStepForm(FlaskForm):
    direction = HiddenField(validators=[DataRequired(), AnyOf(DIRECTIONS)])
