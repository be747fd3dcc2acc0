from srm_collab.db.session import create_tables, engine


def init_db():
    """Initialize the local database by creating all tables."""
    create_tables(engine)


if __name__ == "__main__":
    init_db()
    print("Database initialized.")
