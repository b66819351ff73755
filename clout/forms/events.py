from flask_wtf import FlaskForm
from wtforms import SelectField, StringField
from wtforms.validators import DataRequired, Length, Optional, ValidationError

from clout.models.event import EVENT_STATUSES, ORGANIZATIONS, Event
from clout.utils.timezone_utils import parse_api_datetime


class EventForm(FlaskForm):
    """Admin-created event; fights are read from the raw JSON body"""

    class Meta:
        csrf = False

    external_id = StringField("External ID", validators=[Optional(), Length(max=100)])
    event_name = StringField("Event Name", validators=[DataRequired(), Length(max=200)])
    organization = SelectField(
        "Organization",
        choices=[(org, org) for org in ORGANIZATIONS],
        validators=[DataRequired()],
    )
    event_date = StringField("Event Date", validators=[DataRequired()])
    venue = StringField("Venue", validators=[Optional(), Length(max=200)])
    location = StringField("Location", validators=[Optional(), Length(max=200)])

    def validate_event_date(self, field):
        try:
            parse_api_datetime(field.data)
        except ValueError:
            raise ValidationError("Event date must be an ISO 8601 datetime")

    def validate_external_id(self, field):
        if field.data and Event.query.filter_by(external_id=field.data).first():
            raise ValidationError("An event with this external ID already exists")


class EventStatusForm(FlaskForm):
    class Meta:
        csrf = False

    status = SelectField(
        "Status",
        choices=[(status, status) for status in EVENT_STATUSES],
        validators=[DataRequired()],
    )
