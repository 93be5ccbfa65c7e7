from ecotrack.db.session import engine, Base
from ecotrack.models import (  # noqa: F401 - register every table on Base.metadata
    Action,
    Event,
    EventParticipant,
    Post,
    PostComment,
    PostLike,
    User,
)


def run_migrations():
    print("Running database migrations...")
    Base.metadata.create_all(bind=engine)
    for table in Base.metadata.sorted_tables:
        print(f"  {table.name}")
    print("Migrations completed successfully.")


if __name__ == "__main__":
    run_migrations()
