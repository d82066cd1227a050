#!/usr/bin/env python3
"""
Script to seed a development database with clinic staff, a patient and sample therapies
"""

from sqlalchemy.exc import SQLAlchemyError

from ayursutra.database import Database
from ayursutra.models import Therapy, User

USERS = [
    {"name": "Clinic Admin", "email": "admin@ayursutra.local", "role": "admin"},
    {"name": "Dr. Meera Nair", "email": "meera@ayursutra.local", "role": "practitioner"},
    {"name": "Dr. Arjun Rao", "email": "arjun@ayursutra.local", "role": "practitioner"},
    {"name": "Demo Patient", "email": "patient@ayursutra.local", "role": "patient"},
]

THERAPIES = [
    {
        "name": "Abhyanga Full Body Massage",
        "sanskrit_name": "Abhyanga",
        "category": "Shamana",
        "therapy_type": "Abhyanga",
        "description": "Warm herbal oil massage that calms Vata and improves circulation.",
        "benefits": ["Relaxation", "Improved circulation"],
        "indications": ["Stress", "Insomnia", "Joint stiffness"],
        "contraindications": ["Fever", "Acute indigestion"],
        "materials": ["Sesame oil", "Mahanarayan oil"],
        "preparation": {
            "pre_therapy": ["Light breakfast at least two hours before"],
            "post_therapy": ["Warm shower after 30 minutes"],
            "diet": ["Warm, freshly cooked meals"],
            "lifestyle": ["Avoid cold exposure for the day"],
        },
        "session_minutes": 60,
        "course_sessions": 7,
        "price_per_session": 1500.0,
        "difficulty": "Beginner",
        "preferred_time_slots": ["morning"],
        "days_between_sessions": 1,
    },
    {
        "name": "Shirodhara",
        "sanskrit_name": "Shirodhara",
        "category": "Shamana",
        "therapy_type": "Shirodhara",
        "description": "Continuous stream of warm oil over the forehead for deep nervous system rest.",
        "benefits": ["Mental clarity", "Better sleep"],
        "indications": ["Anxiety", "Insomnia", "Migraine"],
        "contraindications": ["Head injury", "Cold and congestion"],
        "materials": ["Ksheerabala oil", "Dhara vessel"],
        "preparation": {
            "pre_therapy": ["Wash hair the evening before"],
            "post_therapy": ["Keep the head covered"],
            "diet": [],
            "lifestyle": ["Rest for the remainder of the day"],
        },
        "session_minutes": 45,
        "course_sessions": 5,
        "price_per_session": 2500.0,
        "price_full_course": 11000.0,
        "difficulty": "Intermediate",
        "preferred_time_slots": ["morning", "evening"],
        "days_between_sessions": 1,
    },
    {
        "name": "Virechana Detox Course",
        "sanskrit_name": "Virechana",
        "category": "Shodhana",
        "therapy_type": "Virechana",
        "description": "Supervised therapeutic purgation to eliminate excess Pitta.",
        "benefits": ["Detoxification", "Improved digestion"],
        "indications": ["Skin disorders", "Hyperacidity", "Jaundice"],
        "contraindications": ["Pregnancy", "Severe weakness"],
        "materials": ["Trivrit lehyam", "Ghee"],
        "preparation": {
            "pre_therapy": ["Three days of internal oleation"],
            "post_therapy": ["Graduated diet (samsarjana krama)"],
            "diet": ["Rice gruel on the therapy day"],
            "lifestyle": ["No travel during the course"],
        },
        "session_minutes": 120,
        "course_sessions": 3,
        "price_per_session": 4000.0,
        "difficulty": "Advanced",
        "preferred_time_slots": ["morning"],
        "days_between_sessions": 2,
    },
]


def seed_clinic(database: Database = None):
    database = database or Database()
    database.create_all()
    db = database.session()

    try:
        print("🔍 Seeding clinic data...\n")

        users = {}
        for data in USERS:
            user = db.query(User).filter(User.email == data["email"]).first()
            if user:
                print(f"   ⏭️  User {data['email']} already exists")
            else:
                user = User(is_active=True, **data)
                db.add(user)
                db.flush()
                print(f"   ✅ Added {data['role']} {data['email']}")
            users[data["email"]] = user

        owner = users["meera@ayursutra.local"]
        for data in THERAPIES:
            if db.query(Therapy).filter(Therapy.name == data["name"]).first():
                print(f"   ⏭️  Therapy '{data['name']}' already exists")
                continue
            db.add(Therapy(created_by_id=owner.id, is_active=True, **data))
            print(f"   ✅ Added therapy '{data['name']}'")

        db.commit()

        print(f"\n{'='*80}")
        print("✅ Seeding completed!")
        print(f"   - Users: {db.query(User).count()}")
        print(f"   - Therapies: {db.query(Therapy).count()}")
        print(f"{'='*80}\n")

        print("📋 Use these ids in the X-User-Id header:")
        for user in db.query(User).order_by(User.id).all():
            print(f"   - {user.id}: {user.name} ({user.role})")

    except SQLAlchemyError as e:
        db.rollback()
        print(f"❌ Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_clinic()
