"""CLI script to bootstrap an ADMIN account in the backend DB.
Usage: python scripts/create_admin.py --username NAME --password PW --birth-date YYYY-MM-DD
"""
import sys
import argparse
import pathlib
from typing import Optional
# Ensure `backend/` is on sys.path so `achievo` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from achievo.database import engine, create_db_and_tables
from achievo.errors import ServiceError
from achievo.models import Role
from achievo.schemas import UserCreate
from achievo import services


def main(username: str, password: str, birth_date: str, email: Optional[str] = None) -> int:
    """Create the admin user through `UserService.add_user`.

    Returns a process exit code; failures are printed to stdout for a
    quick CLI feedback loop.
    """
    create_db_and_tables()
    dto = UserCreate(username=username, password=password, birth_date=birth_date, email=email, role=Role.ADMIN)
    with Session(engine) as session:
        try:
            created = services.UserService(session).add_user(dto)
        except ServiceError as e:
            print(f'Could not create admin: {e.message}')
            return 1
    print(f'Created admin {created.username} with id {created.id}')
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--username', required=True)
    parser.add_argument('--password', required=True)
    parser.add_argument('--birth-date', required=True, help='YYYY-MM-DD')
    parser.add_argument('--email')
    args = parser.parse_args()
    sys.exit(main(args.username, args.password, args.birth_date, email=args.email))
