from datetime import datetime, timezone

from clout import db

pick_likes = db.Table(
    "pick_likes",
    db.Column("pick_id", db.Integer, db.ForeignKey("picks.id"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
)


class Pick(db.Model):
    __tablename__ = "picks"

    id = db.Column(db.Integer, primary_key=True)

    # Pick identification
    capper_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=True)
    fight_index = db.Column(db.Integer)  # NULL on picks made before per-fight picks

    # Display snapshot kept from before picks referenced events directly
    fight_event = db.Column(db.JSON)

    # Prediction
    predicted_winner = db.Column(db.String(100), nullable=False)
    predicted_method = db.Column(db.String(20))
    predicted_round = db.Column(db.Integer)
    predicted_odds = db.Column(db.Integer)
    confidence = db.Column(db.Integer, nullable=False)
    analysis = db.Column(db.Text)

    # Verified outcome, present iff verified_at is set
    verified_winner = db.Column(db.String(100))
    verified_method = db.Column(db.String(20))
    verified_round = db.Column(db.Integer)
    verified_at = db.Column(db.DateTime)
    is_correct = db.Column(db.Boolean)

    is_active = db.Column(db.Boolean, default=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    likes = db.relationship("User", secondary=pick_likes, lazy="dynamic")

    __table_args__ = (
        db.Index("idx_pick_capper_created", "capper_id", "created_at"),
        db.Index("idx_pick_event_verified", "event_id", "verified_at"),
        db.CheckConstraint("confidence BETWEEN 1 AND 10", name="confidence_range"),
    )

    def __repr__(self):
        return f"<Pick capper_id={self.capper_id} event_id={self.event_id} winner={self.predicted_winner}>"

    @property
    def is_verified(self):
        return self.verified_at is not None

    @property
    def prediction(self):
        return {
            "winner": self.predicted_winner,
            "method": self.predicted_method,
            "round": self.predicted_round,
            "odds": self.predicted_odds,
            "confidence": self.confidence,
        }

    @property
    def verified_outcome(self):
        if not self.is_verified:
            return None
        return {
            "winner": self.verified_winner,
            "method": self.verified_method,
            "round": self.verified_round,
            "verified_at": self.verified_at.isoformat(),
            "is_correct": self.is_correct,
        }

    @property
    def organization(self):
        if self.event is not None:
            return self.event.organization
        if self.fight_event:
            return self.fight_event.get("organization")
        return None

    @property
    def fight(self):
        if self.event is None:
            return None
        return self.event.fight_at(self.fight_index)

    @property
    def is_pending(self):
        """Not verified yet and the event hasn't been completed"""
        if self.is_verified:
            return False
        return self.event is None or not self.event.is_completed

    def mark_verified(self, result, is_correct, verified_at=None):
        """Record the verified outcome; a pick is verified exactly once"""
        if self.is_verified:
            raise ValueError(f"Pick {self.id} is already verified")

        self.verified_winner = result["winner"]
        self.verified_method = result["method"]
        self.verified_round = result.get("round")
        self.verified_at = verified_at or datetime.now(timezone.utc)
        self.is_correct = is_correct

    def can_modify(self, user):
        """Check whether a user may edit or delete this pick

        Returns:
            tuple: (allowed, message, status_code)
        """
        if self.capper_id != user.id:
            return False, "Not authorized to modify this pick", 403
        if self.is_verified:
            return False, "Cannot modify a verified pick", 400
        if self.event is not None and not self.event.accepts_picks_on(self.fight):
            return False, "Picks are locked once the fight has started", 400
        return True, "OK", 200

    def is_liked_by(self, user):
        return self.likes.filter(pick_likes.c.user_id == user.id).count() > 0

    @staticmethod
    def get_unverified_for_event(event_id, session=None):
        session = session or db.session
        return session.scalars(
            db.select(Pick)
            .where(
                Pick.event_id == event_id,
                Pick.verified_at.is_(None),
                Pick.is_active.is_(True),
            )
            .order_by(Pick.id.asc())
        ).all()

    @staticmethod
    def get_verified_for_capper(capper_id, session=None):
        session = session or db.session
        return session.scalars(
            db.select(Pick)
            .where(Pick.capper_id == capper_id, Pick.verified_at.isnot(None))
            .order_by(Pick.id.asc())
        ).all()

    def to_dict(self, include_capper=True):
        """Convert pick to dictionary for API responses"""
        data = {
            "id": self.id,
            "capper_id": self.capper_id,
            "event_id": self.event_id,
            "fight_index": self.fight_index,
            "fight_event": self.fight_event,
            "prediction": self.prediction,
            "analysis": self.analysis,
            "verified_outcome": self.verified_outcome,
            "is_pending": self.is_pending,
            "like_count": self.likes.count(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

        if include_capper and self.capper is not None:
            data["capper"] = self.capper.to_summary_dict()

        return data
