"""
Report question bank coverage by domain (against the exam-guide weights) and by subdomain.
Run: python bank_report.py
      python bank_report.py --top 10 --target 500
"""
import argparse
import sys
from pathlib import Path

from aceprep import config
from aceprep.bank import QuestionBank, coverage_report, subdomain_counts


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--bank", default=None, help=f"Bank file (default: {config.BANK_PATH})")
    parser.add_argument("--target", type=int, default=500, help="Target bank size (default 500)")
    parser.add_argument("--top", type=int, default=20, help="How many subdomains to list (default 20)")
    args = parser.parse_args()

    try:
        bank = QuestionBank.from_file(Path(args.bank) if args.bank else config.BANK_PATH)
    except (FileNotFoundError, ValueError) as e:
        print(f"Could not load bank: {e}")
        sys.exit(1)

    rows = coverage_report(bank, target_total=args.target)

    print()
    print("=" * 100)
    print("DOMAIN DISTRIBUTION")
    print("=" * 100)
    print(f"\nTotal questions: {len(bank)}  (target {args.target}, gap {args.target - len(bank)})\n")
    print(f"{'Domain':<55} {'Current':>7} {'%':>6}   {'Target':>6} {'%':>4}   {'Gap':>5}")
    print("-" * 100)
    for row in rows:
        print(
            f"{row.domain:<55} {row.current:>7} {row.current_pct:>5.1f}%   "
            f"{row.target_count:>6} {row.target_pct:>3}%   {row.gap:>5}"
        )

    print("\n--- Top subdomains ---")
    for name, count in list(subdomain_counts(bank).items())[:args.top]:
        print(f"  {count:4d}  {name}")

    print("\n--- Domain gaps ---")
    for row in rows:
        if row.gap > 0:
            print(f"  • {row.domain}: +{row.gap} questions needed")
        elif row.gap < 0:
            print(f"  • {row.domain}: {-row.gap} questions over target")
        else:
            print(f"  • {row.domain}: ✓ target met")
    print()


if __name__ == "__main__":
    main()
