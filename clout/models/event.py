from datetime import datetime, timedelta, timezone

from clout import db

ORGANIZATIONS = ("UFC", "Bellator", "ONE", "PFL", "Boxing", "Other")
EVENT_STATUSES = ("upcoming", "live", "completed")
RESULT_METHODS = ("KO/TKO", "Submission", "Decision", "Draw", "No Contest")

# Results with these methods have no winning fighter
NO_WINNER_METHODS = ("Draw", "No Contest")


def _as_utc(dt):
    # SQLite hands datetimes back without tzinfo; they are stored as UTC
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    external_id = db.Column(db.String(100), unique=True, nullable=False, index=True)

    event_name = db.Column(db.String(200), nullable=False)
    organization = db.Column(db.String(20), nullable=False, default="Other")
    event_date = db.Column(db.DateTime, nullable=False)
    venue = db.Column(db.String(200))
    location = db.Column(db.String(200))

    status = db.Column(db.String(20), nullable=False, default="upcoming")

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    fights = db.relationship(
        "Fight",
        backref="event",
        order_by="Fight.position",
        cascade="all, delete-orphan",
    )
    picks = db.relationship("Pick", backref="event", lazy="dynamic")

    __table_args__ = (
        db.Index("idx_event_status_date", "status", "event_date"),
    )

    def __repr__(self):
        return f"<Event {self.event_name} ({self.status})>"

    def fight_at(self, index):
        """Get the fight at a card position, or None if it doesn't exist"""
        if index is None or index < 0 or index >= len(self.fights):
            return None
        return self.fights[index]

    @property
    def all_results_in(self):
        return bool(self.fights) and all(fight.has_result for fight in self.fights)

    @property
    def is_completed(self):
        return self.status == "completed"

    def has_started(self, now=None):
        now = now or datetime.now(timezone.utc)
        return now >= _as_utc(self.event_date)

    def accepts_picks_on(self, fight, now=None):
        """Picks are taken only before the card starts and before a result is in"""
        if fight is None or fight.has_result:
            return False
        return self.status == "upcoming" and not self.has_started(now)

    def add_fight(self, fighter1_name, fighter2_name, **kwargs):
        """Append a fight to the end of the card"""
        fight = Fight(
            position=len(self.fights),
            fighter1_name=fighter1_name,
            fighter2_name=fighter2_name,
            **kwargs,
        )
        self.fights.append(fight)
        return fight

    def set_status(self, status):
        if status not in EVENT_STATUSES:
            raise ValueError(f"Unknown event status: {status}")
        self.status = status

    def refresh_status(self, now=None, completion_hours=8):
        """Advance upcoming -> live -> completed based on time and results

        Returns:
            bool: True if the status changed
        """
        now = now or datetime.now(timezone.utc)
        old_status = self.status

        if self.status == "upcoming" and self.has_started(now):
            self.status = "live"

        if self.status == "live":
            finished_at = _as_utc(self.event_date) + timedelta(hours=completion_hours)
            if self.all_results_in or now >= finished_at:
                self.status = "completed"

        return self.status != old_status

    @staticmethod
    def get_completed_with_results(session=None):
        """Completed events with at least one fight carrying a result"""
        session = session or db.session
        return session.scalars(
            db.select(Event)
            .where(
                Event.status == "completed",
                Event.fights.any(
                    db.or_(
                        Fight.result_winner.isnot(None),
                        Fight.result_method.isnot(None),
                    )
                ),
            )
            .order_by(Event.event_date.asc())
        ).all()

    @staticmethod
    def get_open_events():
        """Events that have not reached the completed state"""
        return Event.query.filter(Event.status != "completed").all()

    def to_dict(self, include_fights=True):
        """Convert event to dictionary for API responses"""
        data = {
            "id": self.id,
            "external_id": self.external_id,
            "event_name": self.event_name,
            "organization": self.organization,
            "event_date": self.event_date.isoformat() if self.event_date else None,
            "venue": self.venue,
            "location": self.location,
            "status": self.status,
        }

        if include_fights:
            data["fights"] = [fight.to_dict() for fight in self.fights]

        return data


class Fight(db.Model):
    __tablename__ = "fights"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey("events.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False)  # 0 is the main event

    fighter1_name = db.Column(db.String(100), nullable=False)
    fighter1_record = db.Column(db.String(20))
    fighter1_odds = db.Column(db.Integer)
    fighter2_name = db.Column(db.String(100), nullable=False)
    fighter2_record = db.Column(db.String(20))
    fighter2_odds = db.Column(db.Integer)

    weight_class = db.Column(db.String(50))
    scheduled_rounds = db.Column(db.Integer, default=3)

    # Result, set once the real-world fight is over
    result_winner = db.Column(db.String(100))
    result_method = db.Column(db.String(20))
    result_round = db.Column(db.Integer)
    result_time = db.Column(db.String(10))
    result_verified_at = db.Column(db.DateTime)

    __table_args__ = (
        db.UniqueConstraint("event_id", "position", name="unique_event_fight_position"),
    )

    def __repr__(self):
        return f"<Fight {self.fighter1_name} vs {self.fighter2_name}>"

    @property
    def fighters(self):
        return [self.fighter1_name, self.fighter2_name]

    @property
    def has_result(self):
        return self.result_winner is not None or self.result_method is not None

    @property
    def result(self):
        """Result as a dictionary, or None if not recorded yet"""
        if not self.has_result:
            return None
        return {
            "winner": self.result_winner,
            "method": self.result_method,
            "round": self.result_round,
            "time": self.result_time,
            "verified_at": (
                self.result_verified_at.isoformat() if self.result_verified_at else None
            ),
        }

    def record_result(self, winner, method, round=None, time=None):
        """Record the authoritative result of this fight"""
        if method not in RESULT_METHODS:
            raise ValueError(f"Unknown result method: {method}")
        if method not in NO_WINNER_METHODS and winner not in self.fighters:
            raise ValueError(f"{winner} is not on this fight")
        if round is not None and not 1 <= round <= (self.scheduled_rounds or 12):
            raise ValueError(f"Round {round} is outside the scheduled rounds")

        self.result_winner = None if method in NO_WINNER_METHODS else winner
        self.result_method = method
        self.result_round = round
        self.result_time = time
        self.result_verified_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "index": self.position,
            "fighter1": {
                "name": self.fighter1_name,
                "record": self.fighter1_record,
                "odds": self.fighter1_odds,
            },
            "fighter2": {
                "name": self.fighter2_name,
                "record": self.fighter2_record,
                "odds": self.fighter2_odds,
            },
            "weight_class": self.weight_class,
            "scheduled_rounds": self.scheduled_rounds,
            "result": self.result,
        }
