from datetime import date, timedelta
from app import create_app
from app.errors import AUTH_EMAIL_ALREADY_IN_USE, FirebaseServiceError
from app.services import events as event_service
from app.services import financial as financial_service
from app.services import holidays as holiday_service
from app.services import users as user_service


def seed_database():
    app = create_app()
    with app.app_context():
        password = 'password123'
        today = date.today()
        seeder = {'userId': 'seed', 'name': 'Seed script', 'email': ''}

        print("Creating users...")

        def create(email, user_data):
            try:
                result = user_service.create_user(email, password, user_data, created_by='seed')
            except FirebaseServiceError as e:
                if e.code != AUTH_EMAIL_ALREADY_IN_USE:
                    raise
                print(f"  {email} already exists, skipped")
                return None
            print(f"  {email} -> users/{result['documentId']}")
            return result['documentId']

        create('admin@maplekids.example.com', {'firstName': 'School', 'lastName': 'Admin', 'role': 'admin'})
        create('teacher1@maplekids.example.com', {'firstName': 'Asha', 'lastName': 'Verma', 'role': 'teacher'})
        create('teacher2@maplekids.example.com', {'firstName': 'Ravi', 'lastName': 'Kumar', 'role': 'teacher'})

        students = [
            ('Aarav', 'Sharma', 'play', 'PG001', 3),
            ('Diya', 'Patel', 'nursery', 'NU001', 4),
            ('Kabir', 'Singh', 'lkg', 'LK001', 5),
            ('Meera', 'Iyer', 'ukg', 'UK001', 6),
            ('Vihaan', 'Gupta', '1st', 'G1001', 7),
        ]
        for first, last, class_name, roll, age in students:
            create(f'{roll.lower()}@maplekids.example.com', {
                'firstName': first,
                'lastName': last,
                'role': 'student',
                'class': class_name,
                'rollNumber': roll,
                'age': age,
                'parentName': f'Parent of {first}',
                'parentPhone': '9876543210',
            })
        # Student without a roll number: gets a users document only.
        create('unassigned@maplekids.example.com', {'firstName': 'New', 'lastName': 'Joiner', 'role': 'student'})

        print("Creating holidays...")
        holiday_service.add_holiday({
            'name': 'Republic Day',
            'startDate': f'{today.year}-01-26',
            'endDate': f'{today.year}-01-26',
        }, seeder)
        holiday_service.add_holiday({
            'name': 'Winter Break',
            'startDate': f'{today.year}-12-24',
            'endDate': f'{today.year}-12-31',
        }, seeder)

        print("Creating events...")
        event_service.add_event({
            'title': 'Annual Sports Day',
            'description': 'Races and games for every class.',
            'date': (today + timedelta(days=14)).isoformat(),
            'time': '09:00',
            'location': 'School ground',
        }, created_by='seed')
        event_service.add_event({
            'title': 'Parent-Teacher Meeting',
            'date': (today + timedelta(days=30)).isoformat(),
            'time': '10:30',
            'location': 'Main hall',
        }, created_by='seed')

        print("Creating financial records...")
        financial_service.add_financial_record({
            'type': 'income', 'category': 'Tuition fee', 'amount': 2500,
            'date': today.isoformat(), 'studentName': 'Aarav Sharma', 'studentClass': 'play',
        }, created_by='seed')
        financial_service.add_financial_record({
            'type': 'expense', 'category': 'Supplies', 'amount': 800,
            'description': 'Art and craft material', 'date': today.isoformat(),
        }, created_by='seed')

        print("\n" + "=" * 60)
        print("    Test accounts")
        print("=" * 60)
        print("\n[Admin]   admin@maplekids.example.com")
        print("[Teacher] teacher1@maplekids.example.com, teacher2@maplekids.example.com")
        print("[Student] pg001@ ... g1001@maplekids.example.com")
        print(f"Password: {password} (all accounts)")
        print("\n" + "=" * 60)
        print("Database seeded.")


if __name__ == '__main__':
    seed_database()
