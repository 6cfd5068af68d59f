import argparse
import os
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from pymongo import MongoClient


def main() -> None:
    env_path = Path(__file__).resolve().parents[1] / ".env"
    load_dotenv(env_path)

    parser = argparse.ArgumentParser(description="Create or promote a StudyHub admin user in MongoDB.")
    parser.add_argument("--uid", required=True, help="External (Firebase) uid of the admin")
    parser.add_argument("--email", required=True, help="Admin email")
    parser.add_argument("--name", default="StudyHub Admin", help="Admin display name")
    args = parser.parse_args()

    mongo_url = os.getenv("MONGO_URL")
    db_name = os.getenv("DB_NAME", "StudyHubA12")
    if not mongo_url:
        raise RuntimeError("MONGO_URL is required")

    uid = args.uid.strip()
    email = args.email.strip().lower()
    display_name = args.name.strip()

    client = MongoClient(mongo_url)
    users = client[db_name]["users"]

    now_iso = datetime.now(timezone.utc).isoformat()
    existing = users.find_one({"$or": [{"uid": uid}, {"email": email}]}, {"_id": 1})

    if existing:
        users.update_one(
            {"_id": existing["_id"]},
            {"$set": {"uid": uid, "email": email, "role": "admin", "updatedAt": now_iso}},
        )
        print(f"Promoted existing user to admin: {email}")
    else:
        users.insert_one(
            {
                "uid": uid,
                "displayName": display_name,
                "email": email,
                "photoURL": None,
                "role": "admin",
                "createdAt": now_iso,
                "updatedAt": now_iso,
            }
        )
        print(f"Created new admin user: {email}")

    client.close()
    print("Seed complete.")
    print(f"UID: {uid}")
    print(f"Email: {email}")


if __name__ == "__main__":
    main()
