"""Derived view state computed from binding records.

Everything here is pure: no store access, safe to recompute on every request.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from pathshala.db.records import (
    Challenge,
    ChallengePayment,
    ChallengeSubmission,
    ChallengeType,
    Event,
    PaymentStatus,
    Post,
    Quiz,
    UserProgress,
    Video,
)

T = TypeVar("T")

UNKNOWN_LABEL = "অজানা"
UNKNOWN_VIDEO = "অজানা ভিডিও"
UNKNOWN_TOPIC = "অজানা টপিক"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class _Loading:
    """Tile value while a collection has not resolved yet (distinct from 0)."""

    _instance: Optional["_Loading"] = None

    def __new__(cls) -> "_Loading":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "LOADING"

    def __bool__(self) -> bool:
        return False


LOADING = _Loading()
Count = Union[int, _Loading]


def _value(record: Any, key: Union[str, Callable[[Any], Any]]) -> Any:
    if callable(key):
        return key(record)
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


# ---- lookups -----------------------------------------------------------------

def lookup(records: Iterable[Any], record_id: Optional[str], label: str = "name", unknown: str = UNKNOWN_LABEL) -> str:
    """Display label for ``record_id``; ``unknown`` when it is not in the list."""
    if record_id is None:
        return unknown
    for record in records:
        if _value(record, "id") == record_id:
            value = _value(record, label)
            return value if value else unknown
    return unknown


def video_title(videos: Sequence[Video], video_id: Optional[str]) -> str:
    return lookup(videos, video_id, "title", UNKNOWN_VIDEO)


def video_topic_name(videos: Sequence[Video], topics: Sequence[Any], video_id: Optional[str]) -> str:
    video = next((v for v in videos if v.id == video_id), None)
    if video is None:
        return UNKNOWN_TOPIC
    return lookup(topics, video.topic_id, "name", UNKNOWN_TOPIC)


# ---- partition / ranking -----------------------------------------------------

@dataclass
class Partition(Generic[T]):
    yes: List[T] = field(default_factory=list)
    no: List[T] = field(default_factory=list)


def partition(records: Iterable[T], predicate: Callable[[T], Any]) -> Partition[T]:
    out: Partition[T] = Partition()
    for record in records:
        (out.yes if predicate(record) else out.no).append(record)
    return out


@dataclass(frozen=True)
class Ranked(Generic[T]):
    rank: int
    record: T


def rank(records: Iterable[T], key: Union[str, Callable[[T], Any]]) -> List[Ranked[T]]:
    """Descending by ``key``; ties keep their input order. Ranks are 0-based."""
    ordered = sorted(records, key=lambda r: _value(r, key) or 0, reverse=True)
    return [Ranked(rank=i, record=r) for i, r in enumerate(ordered)]


def top(records: Iterable[T], key: Union[str, Callable[[T], Any]], n: int) -> List[T]:
    return [r.record for r in rank(records, key)[:n]]


# ---- aggregates --------------------------------------------------------------

def count_of(binding: Any) -> Count:
    if binding is None or getattr(binding, "loading", True):
        return LOADING
    return len(binding.records)


def aggregate_counts(bindings: Mapping[str, Any]) -> Dict[str, Count]:
    return {name: count_of(binding) for name, binding in bindings.items()}


# ---- progress ----------------------------------------------------------------

PROGRESS_FILTERS = ("all", "pending", "completed")


def filter_progress(progress: Iterable[UserProgress], status: str = "all") -> List[UserProgress]:
    if status not in PROGRESS_FILTERS:
        raise ValueError(f"Unknown progress filter: {status}")
    if status == "all":
        return list(progress)
    split = partition(progress, lambda p: p.watched)
    return split.yes if status == "completed" else split.no


def progress_counts(progress: Sequence[UserProgress]) -> Dict[str, int]:
    split = partition(progress, lambda p: p.watched)
    return {"all": len(progress), "pending": len(split.no), "completed": len(split.yes)}


def find_progress(progress: Iterable[UserProgress], user_id: str, video_id: str) -> Optional[UserProgress]:
    return next((p for p in progress if p.user_id == user_id and p.video_id == video_id), None)


def topic_videos(videos: Iterable[Video], topic_id: str) -> List[Video]:
    return sorted((v for v in videos if v.topic_id == topic_id), key=lambda v: v.order)


def can_access_video(videos: Iterable[Video], progress: Iterable[UserProgress], video: Video, user_id: str) -> bool:
    """The first video of a topic is open; later ones once the previous one is watched."""
    ordered = topic_videos(videos, video.topic_id)
    index = next((i for i, v in enumerate(ordered) if v.id == video.id), -1)
    if index <= 0:
        return True
    previous = find_progress(progress, user_id, ordered[index - 1].id)
    return bool(previous and previous.watched)


def quiz_results(quiz: Quiz, progress: Iterable[UserProgress]) -> List[UserProgress]:
    return [p for p in progress if p.video_id == quiz.video_id and p.quiz_score is not None]


def average_score(results: Sequence[UserProgress]) -> float:
    if not results:
        return 0.0
    return sum(r.quiz_score or 0 for r in results) / len(results)


# ---- community ---------------------------------------------------------------

def _created_ts(record: Any) -> float:
    created = _value(record, "created_at")
    if isinstance(created, datetime):
        return (created if created.tzinfo else created.replace(tzinfo=timezone.utc)).timestamp()
    return _EPOCH.timestamp()


def sort_posts(posts: Iterable[Post]) -> List[Post]:
    """Pinned first, then most liked, then newest."""
    return sorted(posts, key=lambda p: (not p.pinned, -(p.likes_count or 0), -_created_ts(p)))


def approved_feed(posts: Iterable[Post]) -> List[Post]:
    return sort_posts(partition(posts, lambda p: p.approved).yes)


def toggle_membership(members: Sequence[str], user_id: str) -> Tuple[List[str], bool]:
    """Remove ``user_id`` if present, else append it. Returns ``(members, now_member)``."""
    if user_id in members:
        return [m for m in members if m != user_id], False
    return [*members, user_id], True


# ---- calendar ----------------------------------------------------------------

def _event_day(event: Event, tz: Optional[tzinfo] = None) -> date:
    """Calendar day of the event as seen in ``tz`` (the stored zone when None)."""
    if not isinstance(event.date, datetime):
        return event.date
    moment = event.date
    if tz is not None:
        moment = (moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)).astimezone(tz)
    return moment.date()


def events_on(events: Iterable[Event], day: date, tz: Optional[tzinfo] = None) -> List[Event]:
    return [e for e in events if _event_day(e, tz) == day]


def upcoming_events(
    events: Iterable[Event], today: date, limit: Optional[int] = 5, tz: Optional[tzinfo] = None
) -> List[Event]:
    upcoming = sorted((e for e in events if _event_day(e, tz) >= today), key=lambda e: e.date)
    return upcoming[:limit] if limit is not None else upcoming


# ---- challenges --------------------------------------------------------------

def active_challenge(challenges: Iterable[Challenge], challenge_type: Union[ChallengeType, str]) -> Optional[Challenge]:
    wanted = ChallengeType(challenge_type)
    return next((c for c in challenges if c.type == wanted and c.is_active), None)


def has_approved_payment(payments: Iterable[ChallengePayment], challenge_id: str, user_id: str) -> bool:
    return any(
        p.challenge_id == challenge_id and p.user_id == user_id and p.status == PaymentStatus.approved
        for p in payments
    )


def can_participate(
    challenge: Optional[Any],
    payments: Iterable[ChallengePayment] = (),
    user_id: Optional[str] = None,
) -> bool:
    """7-day challenges are open; 30-day ones are open when free or paid (approved)."""
    if challenge is None:
        return False
    challenge_type = ChallengeType(_value(challenge, "type"))
    if challenge_type == ChallengeType.seven_day:
        return True
    if challenge_type == ChallengeType.thirty_day:
        if (_value(challenge, "price") or 0) == 0:
            return True
        if user_id is None:
            return False
        return has_approved_payment(payments, str(_value(challenge, "id")), user_id)
    return False


def leaderboard_submissions(submissions: Iterable[ChallengeSubmission], challenge: Optional[Challenge]) -> List[ChallengeSubmission]:
    if challenge is None:
        return []
    entries = [s for s in submissions if s.approved and s.challenge_id == challenge.id]
    return top(entries, "likes_count", len(entries))
