"""ACE Prep: Associate Cloud Engineer exam and practice simulator."""
import sys
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from aceprep import config
from aceprep.bank import QuestionBank, load_default_bank
from aceprep.errors import ConfirmationRequired, EmptySubmissionError, SessionError
from aceprep.scoring import is_passing, percentage, result_label
from aceprep.session import Mode, Notice, SessionState
from aceprep.storage import KeyValueStore, SupabaseStore, create_supabase_client, open_store

config.configure_logging()
st.set_page_config(page_title="ACE Prep", layout="wide")
st.sidebar.title("ACE Prep")

OPTION_LABELS = "ABCDEFGHIJ"


@st.cache_resource
def get_bank() -> QuestionBank:
    return load_default_bank()


@st.cache_resource
def get_supabase():
    return create_supabase_client()


def get_store() -> KeyValueStore:
    if config.STORAGE_BACKEND == "supabase":
        return SupabaseStore(get_supabase())
    return open_store(session_state=st.session_state)


def get_engine() -> SessionState:
    if "engine" not in st.session_state:
        engine = SessionState(get_bank(), get_store())
        if engine.restore():
            st.toast("Resumed your exam in progress.")
        st.session_state["engine"] = engine
    return st.session_state["engine"]


def _fmt(seconds: int) -> str:
    m, s = divmod(max(0, int(seconds)), 60)
    h, m = divmod(m, 60)
    return f"{h}:{m:02d}:{s:02d}" if h else f"{m}:{s:02d}"


def show_notices(engine: SessionState):
    for notice in engine.pop_notices():
        if notice is Notice.TIME_WARNING:
            st.toast(f"⏰ {notice.value}")
        elif notice is Notice.TIME_EXPIRED:
            st.warning(notice.value)
        else:
            st.error(notice.value)


@st.fragment(run_every=1)
def exam_timer(engine: SessionState):
    engine.pump_timer()
    if engine.mode not in (Mode.EXAM, Mode.SUBMIT_PENDING):
        st.rerun()
    show_notices(engine)
    remaining = engine.remaining_seconds or 0
    st.metric("Time left", _fmt(remaining))


def question_navigator(engine: SessionState):
    session = engine.session
    st.sidebar.markdown("### Questions")
    cols = st.sidebar.columns(5)
    for i, qid in enumerate(session.question_ids):
        mark = "🚩" if session.flags.get(qid) else ("●" if qid in session.answers else "○")
        if cols[i % 5].button(f"{i + 1}{mark}", key=f"nav_{i}", type="primary" if i == session.cursor else "secondary"):
            engine.go_to(i)
            st.rerun()


def answer_picker(engine: SessionState, key_prefix: str):
    """Radio over the shuffled options; records a changed choice through the engine."""
    q = engine.current_question()
    options = engine.display_options()
    current = engine.selected_display_index()
    choice = st.radio(
        "Choose one:",
        range(len(options)),
        format_func=lambda i: f"{OPTION_LABELS[i]}. {options[i]}",
        index=current,
        key=f"{key_prefix}_{q.id}",
    )
    if choice is not None and choice != current:
        feedback = engine.select_answer(choice)
        if feedback is None:
            st.rerun()
        return feedback
    return engine.feedback_for() if engine.mode is Mode.PRACTICE else None


def nav_buttons(engine: SessionState):
    session = engine.session
    col1, col2, col3 = st.columns([1, 1, 2])
    with col1:
        if st.button("← Previous", disabled=session.cursor == 0):
            engine.previous_question()
            st.rerun()
    with col2:
        if st.button("Next →", disabled=session.cursor >= len(session) - 1):
            engine.next_question()
            st.rerun()
    return col3


engine = get_engine()
bank = engine.bank
show_notices(engine)

# ----- Landing -----
if engine.mode is Mode.LANDING:
    st.header("Associate Cloud Engineer Practice")
    counts = bank.domain_counts()
    cols = st.columns(len(counts) + 1)
    cols[0].metric("Total questions", len(bank))
    for col, (domain, n) in zip(cols[1:], counts.items()):
        col.metric(domain, n)
    st.caption(
        f"Exam: {min(config.EXAM_SIZE, len(bank))} questions · {config.EXAM_DURATION_SECONDS // 60} minutes · "
        f"pass at {config.PASS_THRESHOLD}%"
    )
    c1, c2, c3 = st.columns(3)
    try:
        if c1.button(f"Start {min(config.EXAM_SIZE, len(bank))}-Question Exam", type="primary", use_container_width=True):
            engine.start_exam()
            st.rerun()
        if c2.button("Practice", use_container_width=True):
            engine.open_practice_config()
            st.rerun()
        if c3.button("Exam History", use_container_width=True):
            engine.open_history()
            st.rerun()
    except SessionError as e:
        st.error(str(e))

# ----- Exam -----
elif engine.mode is Mode.EXAM:
    session = engine.session
    q = engine.current_question()
    with st.sidebar:
        exam_timer(engine)
        progress = engine.counts()
        st.progress(progress.answered / progress.total if progress.total else 0)
        st.caption(f"{progress.answered}/{progress.total} answered · {progress.flagged} flagged")
    question_navigator(engine)

    st.subheader(f"Question {session.cursor + 1} of {len(session)}")
    st.caption(q.domain)
    st.write(q.question)
    answer_picker(engine, "exam")

    col3 = nav_buttons(engine)
    with col3:
        flagged = session.flags.get(q.id, False)
        if st.button("Unflag" if flagged else "🚩 Flag for review"):
            engine.toggle_flag()
            st.rerun()
    st.divider()
    s1, s2 = st.columns([1, 3])
    if s1.button("Submit exam", type="primary"):
        try:
            engine.submit_exam()
            st.rerun()
        except EmptySubmissionError:
            st.rerun()
    if s2.button("Abandon exam"):
        engine.return_to_landing()
        st.rerun()

# ----- Submit confirmation -----
elif engine.mode is Mode.SUBMIT_PENDING:
    counts = engine.state.counts
    with st.sidebar:
        exam_timer(engine)
    st.header("Submit exam?")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Flagged", counts.flagged)
    c2.metric("Unanswered", counts.unanswered)
    c3.metric("Answered", counts.answered)
    c4.metric("Total", counts.total)
    st.warning("You still have flagged questions. Review them or submit anyway.")
    b1, b2, b3 = st.columns(3)
    if b1.button("Review first flagged", use_container_width=True):
        engine.jump_to_first_flagged()
        st.rerun()
    if b2.button("Submit anyway", type="primary", use_container_width=True):
        engine.confirm_submit()
        st.rerun()
    if b3.button("Back to exam", use_container_width=True):
        engine.cancel_submit()
        st.rerun()

# ----- Practice setup -----
elif engine.mode is Mode.PRACTICE_CONFIG:
    cfg = engine.state
    st.header("Practice")
    st.caption("Questions are drawn in proportion to each domain's share of the bank. Feedback is immediate.")
    domains = st.multiselect("Domains", list(cfg.domains), default=list(cfg.domains))
    size = st.number_input("Number of questions", min_value=1, max_value=max(1, cfg.max_size), value=max(1, cfg.default_size))
    c1, c2 = st.columns(2)
    if c1.button("Start practice", type="primary", use_container_width=True):
        try:
            engine.start_practice(int(size), domains)
            st.rerun()
        except SessionError as e:
            st.error(str(e))
    if c2.button("Back to Home", use_container_width=True):
        engine.return_to_landing()
        st.rerun()

# ----- Practice -----
elif engine.mode is Mode.PRACTICE:
    session = engine.session
    q = engine.current_question()
    progress = engine.counts()
    st.progress((session.cursor + 1) / len(session))
    st.caption(f"{q.domain} → {q.subdomain} | Question {session.cursor + 1} of {len(session)} | {progress.answered} answered")
    question_navigator(engine)

    st.subheader("Question")
    st.write(q.question)
    feedback = answer_picker(engine, "practice")
    if feedback is not None:
        st.divider()
        if feedback.is_correct:
            st.success("✓ Correct! Well done.")
        else:
            st.error(f"✗ Incorrect. The correct answer is {OPTION_LABELS[feedback.correct_display]}.")
        st.info(feedback.explanation or "No explanation available for this question.")

    col3 = nav_buttons(engine)
    with col3:
        if st.button("Finish practice"):
            try:
                engine.finish_practice(confirm_unanswered=st.session_state.pop("confirm_finish", False))
            except ConfirmationRequired as e:
                st.session_state["confirm_finish"] = True
                st.warning(f"{e} Click Finish practice again to see your results.")
            else:
                st.rerun()

# ----- Exam results -----
elif engine.mode is Mode.RESULTS:
    entry = engine.state.entry
    st.header("Exam Review" if engine.state.review else "Exam Results")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Score", f"{entry.percentage}%")
    c2.metric("Correct", f"{entry.score}/{entry.total}")
    c3.metric("Result", result_label(entry.percentage))
    c4.metric("Time", _fmt(entry.time_spent))
    if is_passing(entry.percentage):
        st.success(f"Passed ({config.PASS_THRESHOLD}% needed).")
    else:
        st.warning(f"Below the {config.PASS_THRESHOLD}% pass mark. Keep studying!")

    st.subheader("By Domain")
    for domain, ds in engine.exam_breakdown().items():
        st.write(f"**{domain}** — {ds.correct}/{ds.total} ({percentage(ds.correct, ds.total)}%), {ds.answered} answered")

    st.subheader("Answers")
    for i, item in enumerate(engine.review_items(), 1):
        icon = "✅" if item.is_correct else ("➖" if item.selected is None else "❌")
        with st.expander(f"{icon} {i}. {item.question.question[:90]}"):
            for pos, original in enumerate(item.display_order):
                label = f"{OPTION_LABELS[pos]}. {item.question.options[original]}"
                if original == item.question.correct:
                    st.success(label)
                elif original == item.selected:
                    st.error(label)
                else:
                    st.write(label)
            st.info(item.explanation or "No explanation available.")

    st.download_button("Export CSV", engine.export_csv(), file_name="results.csv", mime="text/csv")
    b1, b2 = st.columns(2)
    if b1.button("Exam History", use_container_width=True):
        engine.open_history()
        st.rerun()
    if b2.button("Back to Home", use_container_width=True):
        engine.return_to_landing()
        st.rerun()

# ----- Practice results -----
elif engine.mode is Mode.PRACTICE_RESULTS:
    summary = engine.state.summary
    st.header("Practice Results")
    c1, c2, c3 = st.columns(3)
    c1.metric("Correct", f"{summary.correct}/{summary.total}", f"{percentage(summary.correct, summary.total)}%")
    c2.metric("Answered", summary.answered)
    c3.metric("Time", _fmt(summary.time_spent))
    st.subheader("By Domain")
    for domain, ds in summary.breakdown.items():
        st.write(f"**{domain}** — {ds.correct}/{ds.total} correct, {ds.answered} answered")
    st.download_button("Export CSV", engine.export_csv(), file_name="practice.csv", mime="text/csv")
    if st.button("Back to Home"):
        engine.return_to_landing()
        st.rerun()

# ----- History -----
elif engine.mode is Mode.HISTORY:
    st.header("Exam History")
    entries = engine.state.entries
    if not entries:
        st.info("No completed exams yet.")
    for entry in entries:
        c1, c2, c3 = st.columns([3, 2, 1])
        c1.write(f"{entry.date[:19].replace('T', ' ')} UTC")
        c2.write(f"{entry.score}/{entry.total} ({entry.percentage}%) · {result_label(entry.percentage)} · {_fmt(entry.time_spent)}")
        if c3.button("Review", key=f"review_{entry.id}"):
            engine.review_history(entry.id)
            st.rerun()
    if st.button("Back to Home"):
        engine.return_to_landing()
        st.rerun()
