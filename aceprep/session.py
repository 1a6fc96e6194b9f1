"""
Exam / practice session state machine.

States are small dataclasses (the tag is the class, ``Mode`` mirrors it for display):

    Landing -> ExamInProgress <-> SubmitPending -> ExamResults -> HistoryView -> Landing
    Landing -> PracticeConfig -> Practice -> PracticeResults -> Landing
    HistoryView -> ExamResults (review of a stored attempt)

SessionState owns the single active session, drives the exam countdown through a
cooperative Ticker and persists the in-progress exam through a KeyValueStore so it can
be resumed after a reload.
"""
import enum
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar, Dict, List, Optional, Tuple

from aceprep import config, scoring
from aceprep.bank import QuestionBank
from aceprep.errors import (
    ConfirmationRequired,
    EmptySubmissionError,
    InvalidTransition,
    SessionError,
    UnknownHistoryEntry,
)
from aceprep.export import session_to_csv
from aceprep.history import HistoryStore
from aceprep.models import AnswerFeedback, DomainScore, ExamHistoryEntry, PracticeSummary, Question
from aceprep.randomizer import is_permutation, to_display, to_original
from aceprep.selection import SessionSelection, SessionSelector
from aceprep.storage import (
    EXAM_ANSWERS,
    EXAM_FLAGS,
    EXAM_KEYS,
    EXAM_SESSION_IDS,
    EXAM_SHUFFLED_OPTIONS,
    EXAM_START_TIME,
    KeyValueStore,
    read_json,
    remove_keys,
    write_json,
)
from aceprep.timer import Countdown, TickEvent, Ticker, TickHandle

logger = logging.getLogger(__name__)


class Mode(enum.Enum):
    LANDING = "landing"
    PRACTICE_CONFIG = "practice_config"
    EXAM = "exam"
    SUBMIT_PENDING = "submit_pending"
    PRACTICE = "practice"
    RESULTS = "results"
    PRACTICE_RESULTS = "practice_results"
    HISTORY = "history"


class Notice(enum.Enum):
    TIME_WARNING = "15 minutes remaining."
    TIME_EXPIRED = "Time is up. Your exam was submitted automatically."
    EMPTY_SUBMISSION = "Answer at least one question before submitting the exam."


@dataclass(frozen=True)
class SubmitCounts:
    flagged: int
    unanswered: int
    answered: int
    total: int


@dataclass
class ActiveSession:
    """Question order, option permutations, answers and flags of the running session."""

    question_ids: Tuple[int, ...]
    permutations: Dict[int, Tuple[int, ...]]
    answers: Dict[int, int] = field(default_factory=dict)
    flags: Dict[int, bool] = field(default_factory=dict)
    cursor: int = 0

    @classmethod
    def from_selection(cls, selection: SessionSelection) -> "ActiveSession":
        return cls(question_ids=selection.question_ids, permutations=dict(selection.permutations))

    def __len__(self) -> int:
        return len(self.question_ids)

    @property
    def current_id(self) -> int:
        return self.question_ids[self.cursor]

    def counts(self) -> SubmitCounts:
        answered = sum(1 for qid in self.question_ids if qid in self.answers)
        flagged = sum(1 for qid in self.question_ids if self.flags.get(qid))
        return SubmitCounts(
            flagged=flagged,
            unanswered=len(self.question_ids) - answered,
            answered=answered,
            total=len(self.question_ids),
        )

    def first_flagged_index(self) -> Optional[int]:
        return next((i for i, qid in enumerate(self.question_ids) if self.flags.get(qid)), None)


@dataclass(frozen=True)
class ReviewItem:
    question: Question
    selected: Optional[int]
    flagged: bool
    display_order: Tuple[int, ...]

    @property
    def is_correct(self) -> bool:
        return self.question.is_correct(self.selected)

    @property
    def explanation(self) -> str:
        return self.question.explanation_for(self.selected)


# ============= States =============

@dataclass(frozen=True)
class Landing:
    mode: ClassVar[Mode] = Mode.LANDING


@dataclass(frozen=True)
class PracticeConfig:
    mode: ClassVar[Mode] = Mode.PRACTICE_CONFIG
    default_size: int
    max_size: int
    domains: Tuple[str, ...]


@dataclass
class ExamInProgress:
    mode: ClassVar[Mode] = Mode.EXAM
    session: ActiveSession
    countdown: Countdown
    started_at: float


@dataclass
class SubmitPending:
    mode: ClassVar[Mode] = Mode.SUBMIT_PENDING
    exam: ExamInProgress
    counts: SubmitCounts


@dataclass
class Practice:
    mode: ClassVar[Mode] = Mode.PRACTICE
    session: ActiveSession
    started_at: float
    feedback: Dict[int, AnswerFeedback] = field(default_factory=dict)


@dataclass(frozen=True)
class ExamResults:
    mode: ClassVar[Mode] = Mode.RESULTS
    entry: ExamHistoryEntry
    flags: Dict[int, bool] = field(default_factory=dict)
    review: bool = False  # opened from history rather than a live exam


@dataclass(frozen=True)
class PracticeResults:
    mode: ClassVar[Mode] = Mode.PRACTICE_RESULTS
    summary: PracticeSummary
    session: ActiveSession


@dataclass(frozen=True)
class HistoryView:
    mode: ClassVar[Mode] = Mode.HISTORY
    entries: Tuple[ExamHistoryEntry, ...]


_EXAM_STATES = (ExamInProgress, SubmitPending)
_LIVE_STATES = (ExamInProgress, Practice)


class SessionState:
    """
    The single logical owner of all mutable session state.

    Args:
        bank: question bank every session draws from
        store: key-value storage port for the in-progress exam and history
        selector: question selector (defaults to one over ``bank``)
        history: exam history store (defaults to one over ``store``)
        ticker: tick scheduler pumped by the host; defaults to one on ``clock``
        clock: wall-clock seconds, injectable for tests
    """

    def __init__(
        self,
        bank: QuestionBank,
        store: KeyValueStore,
        selector: Optional[SessionSelector] = None,
        history: Optional[HistoryStore] = None,
        ticker: Optional[Ticker] = None,
        clock=time.time,
        exam_size: int = config.EXAM_SIZE,
        exam_duration: int = config.EXAM_DURATION_SECONDS,
        warning_at: int = config.TIME_WARNING_SECONDS,
    ):
        self.bank = bank
        self.store = store
        self.selector = selector or SessionSelector(bank)
        self.history = history or HistoryStore(store)
        self.clock = clock
        self.ticker = ticker or Ticker(clock=clock)
        self.exam_size = exam_size
        self.exam_duration = exam_duration
        self.warning_at = warning_at

        self.state = Landing()
        self._tick: Optional[TickHandle] = None
        self._notices: List[Notice] = []

    # ============= Introspection =============

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def session(self) -> Optional[ActiveSession]:
        state = self.state
        if isinstance(state, SubmitPending):
            return state.exam.session
        if isinstance(state, (ExamInProgress, Practice, PracticeResults)):
            return state.session
        return None

    @property
    def remaining_seconds(self) -> Optional[int]:
        exam = self._exam_or_none()
        return exam.countdown.remaining if exam else None

    def current_question(self) -> Optional[Question]:
        session = self.session
        if session is None or not len(session):
            return None
        return self.bank.get(session.current_id)

    def questions(self) -> List[Question]:
        session = self.session
        return self.questions_for(session.question_ids) if session else []

    def questions_for(self, ids) -> List[Question]:
        return [self.bank.get(qid) for qid in ids]

    def display_options(self, question_id: Optional[int] = None) -> List[str]:
        """Option texts in the order shown for this session."""
        session = self._require_session("show options")
        qid = session.current_id if question_id is None else question_id
        question = self.bank.get(qid)
        return [question.options[i] for i in session.permutations[qid]]

    def selected_display_index(self, question_id: Optional[int] = None) -> Optional[int]:
        session = self._require_session("read an answer")
        qid = session.current_id if question_id is None else question_id
        selected = session.answers.get(qid)
        return None if selected is None else to_display(session.permutations[qid], selected)

    def counts(self) -> SubmitCounts:
        return self._require_session("count answers").counts()

    def pop_notices(self) -> List[Notice]:
        notices, self._notices = self._notices, []
        return notices

    # ============= Exam lifecycle =============

    def restore(self) -> bool:
        """
        Resume an exam saved in storage.

        Returns:
            True when an exam was rehydrated. Expired or unreadable saves are discarded.
        """
        self._require("restore an exam", Landing)
        start = read_json(self.store, EXAM_START_TIME)
        if start is None:
            return False
        try:
            start = float(start)
            if not math.isfinite(start):
                raise ValueError("start time is not finite")
            if start > self.clock():
                raise ValueError("start time is in the future")
            remaining = self.exam_duration - int(self.clock() - start)
            ids = self._load_ids(read_json(self.store, EXAM_SESSION_IDS))
            perms = self._load_permutations(read_json(self.store, EXAM_SHUFFLED_OPTIONS), ids)
        except (TypeError, ValueError, KeyError) as e:
            logger.warning(f"Discarding saved exam: {e}")
            remove_keys(self.store, *EXAM_KEYS)
            return False

        if remaining <= 0:
            logger.info("Saved exam has already expired; discarding it")
            remove_keys(self.store, *EXAM_KEYS)
            return False

        session = ActiveSession(
            question_ids=ids,
            permutations=perms,
            answers=self._load_answers(read_json(self.store, EXAM_ANSWERS), ids),
            flags=self._load_flags(read_json(self.store, EXAM_FLAGS), ids),
        )
        self._enter_exam(session, start, remaining)
        logger.info(f"Resumed exam with {len(ids)} questions, {remaining}s remaining")
        return True

    def start_exam(self):
        self._require_not_exam("start an exam")
        selection = self.selector.select_exam(self.exam_size)
        if not len(selection):
            raise SessionError("The question bank is empty.")
        session = ActiveSession.from_selection(selection)
        start = self.clock()
        self._enter_exam(session, start, self.exam_duration)

        write_json(self.store, EXAM_START_TIME, start)
        write_json(self.store, EXAM_SESSION_IDS, list(session.question_ids))
        write_json(self.store, EXAM_SHUFFLED_OPTIONS, {str(k): list(v) for k, v in session.permutations.items()})
        write_json(self.store, EXAM_ANSWERS, {})
        write_json(self.store, EXAM_FLAGS, {})
        logger.info(f"Exam started: {len(session)} questions, {self.exam_duration}s")

    def submit_exam(self, bypass_flags: bool = False) -> Optional[SubmitCounts]:
        """
        Submit the running exam.

        Returns:
            SubmitCounts when flagged questions need confirmation (state becomes SubmitPending),
            None when the exam was finalized.

        Raises:
            EmptySubmissionError: nothing answered yet; the exam keeps running
        """
        exam = self._require("submit the exam", ExamInProgress)
        counts = exam.session.counts()
        if counts.answered == 0:
            self._notices.append(Notice.EMPTY_SUBMISSION)
            raise EmptySubmissionError()
        if counts.flagged and not bypass_flags:
            self.state = SubmitPending(exam=exam, counts=counts)
            return counts
        self._finalize_exam(exam)
        return None

    def confirm_submit(self) -> ExamHistoryEntry:
        pending = self._require("confirm submission", SubmitPending)
        return self._finalize_exam(pending.exam)

    def cancel_submit(self):
        pending = self._require("cancel submission", SubmitPending)
        self.state = pending.exam

    def jump_to_first_flagged(self):
        pending = self._require("review flagged questions", SubmitPending)
        exam = pending.exam
        index = exam.session.first_flagged_index()
        if index is not None:
            exam.session.cursor = index
        self.state = exam

    def pump_timer(self) -> int:
        """Deliver due timer ticks. Called by the host roughly once per second."""
        return self.ticker.pump()

    # ============= Practice lifecycle =============

    def open_practice_config(self):
        self._require_not_exam("configure practice")
        self.state = PracticeConfig(
            default_size=min(config.DEFAULT_PRACTICE_SIZE, len(self.bank)),
            max_size=len(self.bank),
            domains=tuple(self.bank.domains()),
        )

    def start_practice(self, size, domains=None):
        self._require("start practice", PracticeConfig)
        selection = self.selector.select_practice(size, domains)
        if not len(selection):
            raise SessionError("No questions match this practice configuration.")
        self.state = Practice(session=ActiveSession.from_selection(selection), started_at=self.clock())
        logger.info(f"Practice started: {len(selection)} questions")

    def feedback_for(self, question_id: Optional[int] = None) -> Optional[AnswerFeedback]:
        practice = self._require("read feedback", Practice)
        qid = practice.session.current_id if question_id is None else question_id
        return practice.feedback.get(qid)

    def finish_practice(self, confirm_unanswered: bool = False) -> PracticeSummary:
        practice = self._require("finish practice", Practice)
        session = practice.session
        unanswered = session.counts().unanswered
        if unanswered and not confirm_unanswered:
            raise ConfirmationRequired(unanswered)
        summary = scoring.practice_summary(
            self.questions(), session.answers, int(self.clock() - practice.started_at)
        )
        self.state = PracticeResults(summary=summary, session=session)
        logger.info(f"Practice finished: {summary.correct}/{summary.total} correct, {summary.answered} answered")
        return summary

    # ============= Answering =============

    def go_to(self, index: int):
        session = self._require_live("navigate")
        if not 0 <= index < len(session):
            raise IndexError(f"Question index {index} outside 0..{len(session) - 1}")
        session.cursor = index

    def next_question(self):
        session = self._require_live("navigate")
        session.cursor = min(session.cursor + 1, len(session) - 1)

    def previous_question(self):
        session = self._require_live("navigate")
        session.cursor = max(session.cursor - 1, 0)

    def select_answer(self, display_index: int) -> Optional[AnswerFeedback]:
        """
        Record the option clicked at ``display_index`` for the current question.

        The display position is translated through the question's permutation before it is
        stored. Practice mode returns immediate feedback; exam mode returns None.
        """
        session = self._require_live("answer a question")
        qid = session.current_id
        question = self.bank.get(qid)
        perm = session.permutations[qid]
        original = to_original(perm, display_index)
        session.answers[qid] = original

        if isinstance(self.state, ExamInProgress):
            write_json(self.store, EXAM_ANSWERS, {str(k): v for k, v in session.answers.items()})
            return None

        feedback = AnswerFeedback(
            question_id=qid,
            selected=original,
            correct=question.correct,
            correct_display=to_display(perm, question.correct),
            is_correct=question.is_correct(original),
            explanation=question.explanation_for(original),
        )
        self.state.feedback[qid] = feedback
        return feedback

    def toggle_flag(self) -> bool:
        session = self._require_live("flag a question")
        qid = session.current_id
        session.flags[qid] = not session.flags.get(qid, False)
        if isinstance(self.state, ExamInProgress):
            write_json(self.store, EXAM_FLAGS, {str(k): v for k, v in session.flags.items() if v})
        return session.flags[qid]

    # ============= Results & history =============

    def open_history(self):
        self._require_not_exam("open history")
        self.state = HistoryView(entries=tuple(self.history.load()))

    def review_history(self, entry_id: str) -> ExamHistoryEntry:
        """Show a stored attempt; its figures are used as stored, not recomputed."""
        self._require("review a past exam", HistoryView, Landing, ExamResults)
        entry = self.history.get(entry_id)
        if entry is None:
            raise UnknownHistoryEntry(entry_id)
        self.state = ExamResults(entry=entry, review=True)
        return entry

    def exam_breakdown(self) -> Dict[str, DomainScore]:
        results = self._require("show the breakdown", ExamResults)
        entry = results.entry
        questions = [self.bank.get(qid) for qid in entry.question_ids if qid in self.bank]
        return scoring.breakdown_by_domain(questions, entry.user_answers)

    def review_items(self) -> List[ReviewItem]:
        state = self.state
        if isinstance(state, ExamResults):
            ids, answers = state.entry.question_ids, state.entry.user_answers
            perms, flags = state.entry.shuffled_options, state.flags
        elif isinstance(state, PracticeResults):
            ids, answers = state.session.question_ids, state.session.answers
            perms, flags = state.session.permutations, state.session.flags
        else:
            raise InvalidTransition("review answers", self.mode)

        items = []
        for qid in ids:
            if qid not in self.bank:
                continue
            question = self.bank.get(qid)
            order = perms.get(qid, ())
            if not is_permutation(order, len(question.options)):
                order = tuple(range(len(question.options)))
            items.append(ReviewItem(
                question=question,
                selected=answers.get(qid),
                flagged=bool(flags.get(qid)),
                display_order=tuple(order),
            ))
        return items

    def export_csv(self) -> str:
        state = self.state
        if isinstance(state, ExamResults):
            questions = [self.bank.get(qid) for qid in state.entry.question_ids if qid in self.bank]
            return session_to_csv(questions, state.entry.user_answers, state.flags)
        session = self._require_session("export results")
        return session_to_csv(self.questions(), session.answers, session.flags)

    def return_to_landing(self):
        """Leave whatever is on screen. An unfinished exam is abandoned and its saved state cleared."""
        if isinstance(self.state, _EXAM_STATES):
            logger.info("Exam abandoned")
            remove_keys(self.store, *EXAM_KEYS)
        self._cancel_tick()
        self.state = Landing()

    # ============= Internals =============

    def _enter_exam(self, session: ActiveSession, start: float, remaining: int):
        self._cancel_tick()
        self.state = ExamInProgress(
            session=session,
            countdown=Countdown(self.exam_duration, self.warning_at, remaining=remaining),
            started_at=start,
        )
        self._tick = self.ticker.schedule(self._on_tick)

    def _on_tick(self):
        exam = self._exam_or_none()
        if exam is None:
            self._cancel_tick()
            return
        for event in exam.countdown.tick():
            if event is TickEvent.WARNING:
                self._notices.append(Notice.TIME_WARNING)
            elif event is TickEvent.EXPIRED:
                self._notices.append(Notice.TIME_EXPIRED)
                logger.info("Exam time expired; submitting automatically")
                self._finalize_exam(exam)

    def _finalize_exam(self, exam: ExamInProgress) -> ExamHistoryEntry:
        self._cancel_tick()
        session = exam.session
        result = scoring.score(self.questions_for(session.question_ids), session.answers)
        now = self.clock()
        entry = ExamHistoryEntry(
            id=self._new_entry_id(now),
            date=datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
            score=result.correct,
            total=result.total,
            percentage=result.percentage,
            time_spent=exam.countdown.elapsed,
            question_ids=session.question_ids,
            user_answers=dict(session.answers),
            shuffled_options=dict(session.permutations),
        )
        self.history.append(entry)
        remove_keys(self.store, *EXAM_KEYS)
        self.state = ExamResults(entry=entry, flags={k: v for k, v in session.flags.items() if v})
        logger.info(
            f"Exam {entry.id} finalized: {entry.score}/{entry.total} ({entry.percentage}%), "
            f"{scoring.result_label(entry.percentage)}"
        )
        return entry

    def _new_entry_id(self, now: float) -> str:
        base = str(int(now * 1000))
        taken = set(self.history.ids())
        candidate, n = base, 1
        while candidate in taken:
            candidate = f"{base}-{n}"
            n += 1
        return candidate

    def _cancel_tick(self):
        if self._tick is not None:
            self._tick.cancel()
            self._tick = None

    def _exam_or_none(self) -> Optional[ExamInProgress]:
        state = self.state
        if isinstance(state, SubmitPending):
            return state.exam
        return state if isinstance(state, ExamInProgress) else None

    def _require(self, operation: str, *types):
        if not isinstance(self.state, types):
            raise InvalidTransition(operation, self.mode)
        return self.state

    def _require_not_exam(self, operation: str):
        if isinstance(self.state, _EXAM_STATES):
            raise InvalidTransition(operation, self.mode)

    def _require_live(self, operation: str) -> ActiveSession:
        return self._require(operation, *_LIVE_STATES).session

    def _require_session(self, operation: str) -> ActiveSession:
        session = self.session
        if session is None:
            raise InvalidTransition(operation, self.mode)
        return session

    # ============= Restore helpers =============

    def _load_ids(self, raw) -> Tuple[int, ...]:
        if not isinstance(raw, list) or not raw:
            raise ValueError("saved question list is missing or empty")
        ids = tuple(int(qid) for qid in raw)
        if len(set(ids)) != len(ids):
            raise ValueError("saved question list has duplicates")
        missing = [qid for qid in ids if qid not in self.bank]
        if missing:
            raise ValueError(f"saved questions not in bank: {missing[:5]}")
        return ids

    def _load_permutations(self, raw, ids: Tuple[int, ...]) -> Dict[int, Tuple[int, ...]]:
        if not isinstance(raw, dict):
            raise ValueError("saved option order is missing")
        perms = {}
        for qid in ids:
            perm = tuple(int(i) for i in raw[str(qid)])
            if not is_permutation(perm, len(self.bank.get(qid).options)):
                raise ValueError(f"saved option order for question {qid} is not a permutation")
            perms[qid] = perm
        return perms

    def _load_answers(self, raw, ids: Tuple[int, ...]) -> Dict[int, int]:
        answers = {}
        if not isinstance(raw, dict):
            return answers
        wanted = set(ids)
        for key, value in raw.items():
            try:
                qid, selected = int(key), int(value)
            except (TypeError, ValueError):
                continue
            if qid in wanted and 0 <= selected < len(self.bank.get(qid).options):
                answers[qid] = selected
        return answers

    def _load_flags(self, raw, ids: Tuple[int, ...]) -> Dict[int, bool]:
        if not isinstance(raw, dict):
            return {}
        wanted = set(ids)
        flags = {}
        for key, value in raw.items():
            try:
                qid = int(key)
            except (TypeError, ValueError):
                continue
            if qid in wanted and value is True:
                flags[qid] = True
        return flags
