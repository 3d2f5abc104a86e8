from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from steelerp.db import engine


def main() -> None:
    print(f"DATABASE_URL={engine.url.render_as_string(hide_password=True)}")
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            tables = conn.execute(
                text("SELECT count(*) FROM information_schema.tables WHERE table_name = 'project'")
            ).scalar()
        print("DB connection OK")
        if not tables:
            print("project table missing: run Base.metadata.create_all first")
    except SQLAlchemyError as exc:
        print("DB connection FAILED")
        print(exc)


if __name__ == "__main__":
    main()
