"""
Built-in reference data: system doctors and starter challenges
"""
import logging

from sqlalchemy import insert, select

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import challenges, doctors, new_id

logger = logging.getLogger(__name__)

SYSTEM_DOCTORS = [
    {
        "name": "Dr. Sarah Johnson",
        "email": "sarah.johnson@hospital.com",
        "specialization": "Cardiologist",
        "photo": "https://images.unsplash.com/photo-1559839734-2b71ea197ec2?w=150&h=150&fit=crop&crop=face",
        "rating": 4.8,
        "experience": 12,
    },
    {
        "name": "Dr. Michael Chen",
        "email": "michael.chen@hospital.com",
        "specialization": "Endocrinologist",
        "photo": "https://images.unsplash.com/photo-1612349317150-e413f6a5b16d?w=150&h=150&fit=crop&crop=face",
        "rating": 4.9,
        "experience": 15,
    },
    {
        "name": "Dr. Emily Rodriguez",
        "email": "emily.rodriguez@hospital.com",
        "specialization": "General Practitioner",
        "photo": "https://images.unsplash.com/photo-1594824475317-29bb5c8b7c0c?w=150&h=150&fit=crop&crop=face",
        "rating": 4.7,
        "experience": 8,
    },
    {
        "name": "Dr. David Kim",
        "email": "david.kim@hospital.com",
        "specialization": "Nutritionist",
        "photo": "https://images.unsplash.com/photo-1582750433449-648ed127bb54?w=150&h=150&fit=crop&crop=face",
        "rating": 4.6,
        "experience": 10,
    },
    {
        "name": "Dr. Lisa Thompson",
        "email": "lisa.thompson@hospital.com",
        "specialization": "Psychiatrist",
        "photo": "https://images.unsplash.com/photo-1551836022-deb4988cc6c0?w=150&h=150&fit=crop&crop=face",
        "rating": 4.8,
        "experience": 14,
    },
    {
        "name": "Dr. James Wilson",
        "email": "james.wilson@hospital.com",
        "specialization": "Orthopedist",
        "photo": "https://images.unsplash.com/photo-1612349317150-e413f6a5b16d?w=150&h=150&fit=crop&crop=face",
        "rating": 4.5,
        "experience": 18,
    },
]

STARTER_CHALLENGES = [
    {
        "title": "Daily Steps Champion",
        "description": "Walk 10,000 steps every day for a week",
        "type": "fitness",
        "difficulty": "medium",
        "target": 10000,
        "unit": "steps",
        "duration": 7,
        "points": 100,
        "icon": "👟",
        "tip": "Start with smaller goals and gradually increase your daily step count.",
    },
    {
        "title": "Hydration Hero",
        "description": "Drink 8 glasses of water daily",
        "type": "wellness",
        "difficulty": "easy",
        "target": 8,
        "unit": "glasses",
        "duration": 7,
        "points": 50,
        "icon": "💧",
        "tip": "Set reminders on your phone to drink water regularly throughout the day.",
    },
    {
        "title": "Healthy Eating Challenge",
        "description": "Eat 5 servings of fruits and vegetables daily",
        "type": "nutrition",
        "difficulty": "hard",
        "target": 5,
        "unit": "servings",
        "duration": 14,
        "points": 150,
        "icon": "🥗",
        "tip": "Plan your meals ahead and keep healthy snacks readily available.",
    },
    {
        "title": "Sleep Better",
        "description": "Get 8 hours of sleep every night",
        "type": "wellness",
        "difficulty": "medium",
        "target": 8,
        "unit": "hours",
        "duration": 7,
        "points": 75,
        "icon": "😴",
        "tip": "Establish a consistent bedtime routine and avoid screens before bed.",
    },
    {
        "title": "Mindful Minutes",
        "description": "Practice mindfulness for 10 minutes daily",
        "type": "mental_health",
        "difficulty": "easy",
        "target": 10,
        "unit": "minutes",
        "duration": 7,
        "points": 60,
        "icon": "🧘",
        "tip": "Find a quiet space and focus on your breathing for better mental clarity.",
    },
]


async def seed_reference_data(session_maker) -> dict:
    """
    Insert missing system doctors (by email) and challenges (by title)

    Safe to run on every startup.

    Returns:
        Number of rows inserted per table
    """
    inserted = {"doctors": 0, "challenges": 0}
    async with session_maker() as session:
        async with session.begin():
            result = await execute_with_retry(session, select(doctors.c.email))
            known_emails = {row[0] for row in result}
            for doctor in SYSTEM_DOCTORS:
                if doctor["email"] not in known_emails:
                    await execute_with_retry(
                        session, insert(doctors).values(id=new_id(), is_system_approved=True, **doctor)
                    )
                    inserted["doctors"] += 1

            result = await execute_with_retry(session, select(challenges.c.title))
            known_titles = {row[0] for row in result}
            for challenge in STARTER_CHALLENGES:
                if challenge["title"] not in known_titles:
                    await execute_with_retry(
                        session, insert(challenges).values(id=new_id(), is_active=True, **challenge)
                    )
                    inserted["challenges"] += 1

    logger.info(
        "Seeded %d system doctors and %d challenges", inserted["doctors"], inserted["challenges"]
    )
    return inserted
