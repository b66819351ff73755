import html
from datetime import datetime, timezone

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from clout import db

ROLES = ("user", "capper")

follows = db.Table(
    "follows",
    db.Column("follower_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("followed_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("created_at", db.DateTime, default=lambda: datetime.now(timezone.utc)),
    db.CheckConstraint("follower_id != followed_id", name="no_self_follow"),
)


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(30), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Profile information
    display_name = db.Column(db.String(100))
    bio = db.Column(db.String(500))
    avatar_url = db.Column(db.String(500))

    # Account status
    role = db.Column(db.String(20), nullable=False, default="user")
    is_active = db.Column(db.Boolean, default=True)
    is_admin = db.Column(db.Boolean, default=False)

    # Capper stats, written only by the verification engine and the follow path
    total_picks = db.Column(db.Integer, nullable=False, default=0)
    correct_picks = db.Column(db.Integer, nullable=False, default=0)
    win_rate = db.Column(db.Float, nullable=False, default=0.0)
    clout_score = db.Column(db.Float, nullable=False, default=0.0)
    follower_count = db.Column(db.Integer, nullable=False, default=0)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    last_login = db.Column(db.DateTime)

    # Relationships
    picks = db.relationship(
        "Pick", backref="capper", lazy="dynamic", cascade="all, delete-orphan"
    )
    following = db.relationship(
        "User",
        secondary=follows,
        primaryjoin=(follows.c.follower_id == id),
        secondaryjoin=(follows.c.followed_id == id),
        backref=db.backref("followers", lazy="dynamic"),
        lazy="dynamic",
    )

    __table_args__ = (
        db.Index("idx_user_role_clout", "role", "clout_score"),
        db.CheckConstraint("total_picks >= 0", name="total_picks_non_negative"),
        db.CheckConstraint(
            "correct_picks >= 0 AND correct_picks <= total_picks",
            name="correct_picks_in_range",
        ),
    )

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password)

    def set_display_name(self, display_name):
        """Set display name with sanitization"""
        if display_name:
            self.display_name = html.escape(display_name.strip())
        else:
            self.display_name = display_name

    @property
    def full_name(self):
        """Return display name or username"""
        return self.display_name or self.username

    @property
    def is_capper(self):
        return self.role == "capper"

    def update_last_login(self):
        """Update last login timestamp"""
        self.last_login = datetime.now(timezone.utc)
        db.session.commit()

    def is_following(self, user):
        return (
            self.following.filter(follows.c.followed_id == user.id).count() > 0
        )

    def follow(self, user):
        """Follow another user and refresh their follower-driven stats

        Returns:
            tuple: (success, message)
        """
        if user.id == self.id:
            return False, "Cannot follow yourself"
        if self.is_following(user):
            return False, "Already following this user"

        self.following.append(user)
        db.session.flush()
        user.refresh_follower_count()
        return True, f"Now following {user.username}"

    def unfollow(self, user):
        """Stop following a user

        Returns:
            tuple: (success, message)
        """
        if not self.is_following(user):
            return False, "Not following this user"

        self.following.remove(user)
        db.session.flush()
        user.refresh_follower_count()
        return True, f"Unfollowed {user.username}"

    def refresh_follower_count(self):
        """Re-derive follower_count from the follow table and update clout score"""
        from clout.utils.scoring import compute_stats

        self.follower_count = self.followers.count()
        self.apply_stats(
            compute_stats(self.correct_picks, self.total_picks, self.follower_count)
        )

    def apply_stats(self, stats):
        """Store the output of the score engine on this user"""
        self.win_rate = stats["win_rate"]
        self.clout_score = stats["clout_score"]

    def stats_dict(self):
        return {
            "total_picks": self.total_picks,
            "correct_picks": self.correct_picks,
            "win_rate": self.win_rate,
            "clout_score": self.clout_score,
            "follower_count": self.follower_count,
        }

    @staticmethod
    def get_leaderboard_query():
        """Cappers ordered by stored clout score, ties by insertion order"""
        return User.query.filter(
            User.role == "capper", User.is_active.is_(True)
        ).order_by(User.clout_score.desc(), User.id.asc())

    def to_dict(self, include_private=False):
        """Convert user to dictionary for API responses"""
        data = {
            "id": self.id,
            "username": self.username,
            "display_name": self.full_name,
            "bio": self.bio,
            "avatar_url": self.avatar_url,
            "role": self.role,
            "clout_score": self.clout_score,
            "follower_count": self.follower_count,
            "following_count": self.following.count(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

        if self.is_capper:
            data["stats"] = self.stats_dict()

        if include_private:
            data["email"] = self.email
            data["is_admin"] = self.is_admin

        return data

    def to_summary_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "clout_score": self.clout_score,
        }
