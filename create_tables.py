# create_tables.py
from taskrelay.database import Base, SessionLocal, engine
from taskrelay.models import User, UserRole, Task  # noqa: F401

DEMO_USERS = [
    {"id": "m1", "name": "Maya Manager", "email": "maya@example.com", "role": UserRole.MANAGER},
    {"id": "e1", "name": "Evan Employee", "email": "evan@example.com", "role": UserRole.EMPLOYEE},
    {"id": "e2", "name": "Erin Employee", "email": "erin@example.com", "role": UserRole.EMPLOYEE},
]


def create_tables():
    """Drop and recreate all tables"""
    try:
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        print("✅ All tables created successfully!")

        create_demo_users()

    except Exception as e:
        print(f"❌ Error creating tables: {e}")


def create_demo_users():
    """Insert a manager and two employees for local development"""
    db = SessionLocal()
    try:
        for data in DEMO_USERS:
            if db.query(User).filter(User.email == data["email"]).first():
                print(f"ℹ️  User {data['email']} already exists")
                continue
            db.add(User(**data))
        db.commit()
        print(f"✅ Demo users ready: {', '.join(u['id'] for u in DEMO_USERS)}")
    except Exception as e:
        db.rollback()
        print(f"❌ Error creating demo users: {e}")
    finally:
        db.close()

if __name__ == "__main__":
    create_tables()
