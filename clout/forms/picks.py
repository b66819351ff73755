from flask_wtf import FlaskForm
from wtforms import IntegerField, SelectField, StringField, TextAreaField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional

from clout.models.event import RESULT_METHODS

# Draw and No Contest can't be predicted with a winner
PICK_METHODS = ("KO/TKO", "Submission", "Decision")


def _method_choices():
    return [("", "Any")] + [(method, method) for method in PICK_METHODS]


class MakePickForm(FlaskForm):
    class Meta:
        csrf = False

    event_id = IntegerField("Event", validators=[InputRequired()])
    fight_index = IntegerField(
        "Fight", validators=[InputRequired(), NumberRange(min=0)]
    )
    winner = StringField("Winner", validators=[DataRequired(), Length(max=100)])
    method = SelectField("Method", choices=_method_choices(), validators=[Optional()])
    round = IntegerField("Round", validators=[Optional(), NumberRange(min=1, max=12)])
    odds = IntegerField("Odds", validators=[Optional()])
    confidence = IntegerField(
        "Confidence", validators=[InputRequired(), NumberRange(min=1, max=10)]
    )
    analysis = TextAreaField("Analysis", validators=[Optional(), Length(max=2000)])


class UpdatePickForm(FlaskForm):
    """Every field is optional; only the ones sent are applied"""

    class Meta:
        csrf = False

    winner = StringField("Winner", validators=[Optional(), Length(max=100)])
    method = SelectField("Method", choices=_method_choices(), validators=[Optional()])
    round = IntegerField("Round", validators=[Optional(), NumberRange(min=1, max=12)])
    odds = IntegerField("Odds", validators=[Optional()])
    confidence = IntegerField(
        "Confidence", validators=[Optional(), NumberRange(min=1, max=10)]
    )
    analysis = TextAreaField("Analysis", validators=[Optional(), Length(max=2000)])


class FightResultForm(FlaskForm):
    class Meta:
        csrf = False

    winner = StringField("Winner", validators=[Optional(), Length(max=100)])
    method = SelectField(
        "Method",
        choices=[(method, method) for method in RESULT_METHODS],
        validators=[DataRequired()],
    )
    round = IntegerField("Round", validators=[Optional(), NumberRange(min=1, max=12)])
    time = StringField("Time", validators=[Optional(), Length(max=10)])
