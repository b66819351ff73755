import html

from flask_wtf import FlaskForm
from wtforms import PasswordField, SelectField, StringField
from wtforms.validators import (
    DataRequired,
    Email,
    Length,
    Optional,
    Regexp,
    URL,
    ValidationError,
)

from clout.models.user import ROLES, User


def sanitize_input(text):
    """Sanitize user input to prevent XSS"""
    if not text:
        return text
    return html.escape(text.strip())


class LoginForm(FlaskForm):
    class Meta:
        csrf = False

    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])


class RegistrationForm(FlaskForm):
    class Meta:
        csrf = False

    username = StringField(
        "Username",
        validators=[
            DataRequired(),
            Length(
                min=3, max=30, message="Username must be between 3 and 30 characters"
            ),
            Regexp(
                r"^[a-zA-Z0-9_]+$",
                message="Username can only contain letters, numbers, and underscores",
            ),
        ],
    )
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField(
        "Password",
        validators=[
            DataRequired(),
            Length(min=6, message="Password must be at least 6 characters long"),
        ],
    )
    role = SelectField(
        "Role",
        choices=[(role, role) for role in ROLES],
        default="user",
        validators=[Optional()],
    )

    def validate_username(self, username):
        user = User.query.filter_by(username=username.data).first()
        if user:
            raise ValidationError(
                "Username already exists. Please choose a different username."
            )

    def validate_email(self, email):
        user = User.query.filter_by(email=email.data.lower()).first()
        if user:
            raise ValidationError(
                "Email already registered. Please use a different email."
            )


class ProfileForm(FlaskForm):
    """Editable profile fields; stats, role and followers are not among them"""

    class Meta:
        csrf = False

    display_name = StringField(
        "Display Name",
        validators=[
            Optional(),
            Length(max=100),
            Regexp(
                r"^[a-zA-Z0-9 _.-]*$",
                message="Display name contains invalid characters",
            ),
        ],
    )
    bio = StringField("Bio", validators=[Optional(), Length(max=500)])
    avatar_url = StringField(
        "Avatar URL", validators=[Optional(), Length(max=500), URL()]
    )
