import argparse
import os
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv
from pymongo import MongoClient

BOOKING_UNIQUE_INDEX = "bookings_student_session_unique"


def _booked_at(doc: Dict[str, Any]) -> str:
    return str(doc.get("bookedAt") or "")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Deduplicate bookedSession so each (studentEmail, studySessionId) has one booking."
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Apply changes. Without this flag, runs in dry-run mode.",
    )
    parser.add_argument(
        "--create-index",
        action="store_true",
        help="Create/ensure the unique booking index after dedupe.",
    )
    args = parser.parse_args()

    root = Path(__file__).resolve().parents[1]
    load_dotenv(root / ".env")

    mongo_url = os.getenv("MONGO_URL", "").strip()
    db_name = os.getenv("DB_NAME", "StudyHubA12").strip()
    if not mongo_url:
        raise RuntimeError("MONGO_URL is required")

    client = MongoClient(mongo_url)
    bookings = client[db_name]["bookedSession"]

    duplicate_groups = list(
        bookings.aggregate(
            [
                {
                    "$group": {
                        "_id": {"studentEmail": "$studentEmail", "studySessionId": "$studySessionId"},
                        "count": {"$sum": 1},
                    }
                },
                {"$match": {"count": {"$gt": 1}}},
            ]
        )
    )

    if not duplicate_groups:
        print("No duplicate booking groups found.")
    else:
        print(f"Found {len(duplicate_groups)} duplicate booking group(s).")

    total_removed = 0
    for group in duplicate_groups:
        student_email = group["_id"]["studentEmail"]
        session_id = group["_id"]["studySessionId"]
        docs: List[Dict[str, Any]] = list(
            bookings.find({"studentEmail": student_email, "studySessionId": session_id})
        )
        if len(docs) <= 1:
            continue

        # The earliest booking is the one the student actually made.
        ranked = sorted(docs, key=_booked_at)
        keep = ranked[0]
        remove_ids = [doc["_id"] for doc in ranked[1:]]
        print(
            f"[GROUP] studentEmail={student_email} studySessionId={session_id} "
            f"keep={keep['_id']} remove={len(remove_ids)}"
        )

        if not args.apply:
            continue

        result = bookings.delete_many({"_id": {"$in": remove_ids}})
        total_removed += int(result.deleted_count)

    if args.apply:
        print(f"Applied changes. removed_bookings={total_removed}")
    else:
        print("Dry run only. Re-run with --apply to persist changes.")

    if args.create_index:
        print("Ensuring unique index on (studentEmail, studySessionId) ...")
        bookings.create_index(
            [("studentEmail", 1), ("studySessionId", 1)],
            unique=True,
            name=BOOKING_UNIQUE_INDEX,
        )
        print(f"Index ensured: {BOOKING_UNIQUE_INDEX}")

    client.close()


if __name__ == "__main__":
    main()
