"""Ingest a JSON/JSONL question dump into the bank file; optionally pre-shuffle every question's options."""
import argparse
import json
import logging
import random
from pathlib import Path

from aceprep import config
from aceprep.models import Question
from aceprep.randomizer import Randomizer, invert

logger = logging.getLogger(__name__)


def parse_record(raw) -> Question | None:
    """Validate one raw record. Returns None if invalid/skip."""
    try:
        return Question.from_dict(raw)
    except ValueError as e:
        logger.warning(f"Skipping record: {e}")
        return None


def parse_line(line: str) -> Question | None:
    line = line.strip()
    if not line:
        return None
    try:
        raw = json.loads(line)
    except json.JSONDecodeError:
        logger.warning(f"Skipping unparseable line: {line[:60]!r}")
        return None
    return parse_record(raw)


def load_and_transform(path: Path):
    """Read JSONL or JSON and yield valid questions."""
    with path.open("r", encoding="utf-8") as f:
        if path.suffix == ".jsonl":
            for line in f:
                q = parse_line(line)
                if q:
                    yield q
            return
        data = json.load(f)
    records = data.get("questions", []) if isinstance(data, dict) else data
    for raw in records:
        q = parse_record(raw)
        if q:
            yield q


def shuffle_options(question: Question, randomizer: Randomizer) -> Question:
    """Re-order options permanently, moving the correct index and wrong-answer explanations with them."""
    perm = randomizer.permutation(len(question.options))
    new_pos = invert(perm)
    return Question(
        id=question.id,
        domain=question.domain,
        subdomain=question.subdomain,
        question=question.question,
        options=tuple(question.options[i] for i in perm),
        correct=new_pos[question.correct],
        explanation=question.explanation,
        wrong_explanations={new_pos[i]: text for i, text in question.wrong_explanations.items()},
    )


def run_import(
    source: Path,
    dest: Path | None = None,
    dry_run: bool = False,
    shuffle: bool = False,
    seed: int | None = None,
):
    if not source.exists():
        raise FileNotFoundError(f"Source not found: {source}")
    dest = dest or config.BANK_PATH

    questions = {}
    for q in load_and_transform(source):
        if q.id in questions:
            logger.warning(f"Duplicate id {q.id}; keeping the later record")
        questions[q.id] = q
    rows = list(questions.values())

    if shuffle:
        randomizer = Randomizer(random.Random(seed))
        rows = [shuffle_options(q, randomizer) for q in rows]
        logger.info(f"Shuffled options of {len(rows)} questions")

    if dry_run:
        print(f"Dry run: would write {len(rows)} questions from {source} to {dest}")
        if rows:
            print("Sample row:", rows[0].to_dict())
        return rows

    dest.parent.mkdir(parents=True, exist_ok=True)
    with dest.open("w", encoding="utf-8") as f:
        json.dump({"questions": [q.to_dict() for q in rows]}, f, indent=2, ensure_ascii=False)
    print(f"Wrote {len(rows)} questions from {source} to {dest}")
    return rows


if __name__ == "__main__":
    config.configure_logging()
    parser = argparse.ArgumentParser(description="Import questions into the ACE Prep bank file.")
    parser.add_argument("source", help="Path to .json or .jsonl question dump")
    parser.add_argument("--dest", default=None, help=f"Bank file to write (default: {config.BANK_PATH})")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, do not write")
    parser.add_argument("--shuffle-options", action="store_true", help="Permanently shuffle each question's options")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for --shuffle-options")
    args = parser.parse_args()
    run_import(
        Path(args.source),
        dest=Path(args.dest) if args.dest else None,
        dry_run=args.dry_run,
        shuffle=args.shuffle_options,
        seed=args.seed,
    )
