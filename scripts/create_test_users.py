"""
Seed a demo organization: units, a general manager, unit managers and sales staff
"""
from app.config.database import engine, SessionLocal
from app.shared.database.models import (
    Base, User, Unit, ManagerUnit, UserRole, UNIT_MANAGER, GENERAL_MANAGER
)
from app.core.auth.service import AuthService

TEST_UNITS = [
    # (code, name, parent code)
    ("HQ", "Head Office", None),
    ("NORTH", "North Region", "HQ"),
    ("HN", "Ha Noi Branch", "NORTH"),
    ("SOUTH", "South Region", "HQ"),
    ("HCM", "Ho Chi Minh Branch", "SOUTH"),
]

TEST_USERS = [
    {
        "email": "gm@salesdash.example.com",
        "password": "manager123",
        "full_name": "Nguyen Van A",
        "role": GENERAL_MANAGER,
        "unit": "HQ"
    },
    {
        "email": "north.manager@salesdash.example.com",
        "password": "manager123",
        "full_name": "Tran Thi B",
        "role": UNIT_MANAGER,
        "unit": "NORTH"
    },
    {
        "email": "hn.manager@salesdash.example.com",
        "password": "manager123",
        "full_name": "Le Van C",
        "role": UNIT_MANAGER,
        "unit": "HN"
    },
    {
        "email": "sales.hn@salesdash.example.com",
        "password": "sales123",
        "full_name": "Pham Thi D",
        "role": "sales",
        "unit": "HN"
    },
    {
        "email": "sales.hcm@salesdash.example.com",
        "password": "sales123",
        "full_name": "Hoang Van E",
        "role": "sales",
        "unit": "HCM"
    },
]

def create_test_users():
    """Create the demo organization once; an existing user table is left alone"""
    
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    
    try:
        existing_users = db.query(User).count()
        if existing_users > 0:
            print(f"{existing_users} users already exist, nothing to seed")
            return
        
        units = {}
        for code, name, parent_code in TEST_UNITS:
            parent = units.get(parent_code)
            unit = Unit(name=name, code=code, parent_id=parent.id if parent else None)
            db.add(unit)
            db.flush()
            units[code] = unit
            print(f"Unit created: {code} - {name}")
        
        for user_data in TEST_USERS:
            user = AuthService.create_identity(
                db,
                email=user_data["email"],
                password=user_data["password"],
                full_name=user_data["full_name"]
            )
            user.profile.unit_id = units[user_data["unit"]].id
            db.query(UserRole).filter(UserRole.user_id == user.id).update({"role": user_data["role"]})
            
            if user_data["role"] == GENERAL_MANAGER:
                for code in ("NORTH", "SOUTH"):
                    db.add(ManagerUnit(user_id=user.id, unit_id=units[code].id))
            
            print(f"User created: {user_data['email']} / {user_data['password']} ({user_data['role']})")
        
        db.commit()
        print(f"\n{len(TEST_UNITS)} units and {len(TEST_USERS)} users created")
        
    except Exception as e:
        db.rollback()
        print(f"Error seeding test data: {e}")
        raise
        
    finally:
        db.close()

if __name__ == "__main__":
    create_test_users()
