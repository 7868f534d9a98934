"""
Seed Data Script - sample data for local development.

Creates categories, universities, an admin, a demo seller with a wallet, a
demo buyer and a handful of listed notes. Existing rows (matched by slug,
name or email) are left untouched, so the script can be re-run.

Usage:
    python scripts/seed_data.py [--password demo-password]
"""
import argparse
import asyncio
import sys

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from notevault.core.config import settings
from notevault.core.database import async_session_maker, close_db, init_db
from notevault.core.logging import configure_logging, get_logger
from notevault.core.security import get_password_hash
from notevault.modules.auth.models import User
from notevault.modules.auth.service import generate_referral_code
from notevault.modules.content.models import Category, University
from notevault.modules.notes.models import Note
from notevault.modules.notes.service import calculate_commission
from notevault.modules.wallet.models import SellerWallet

logger = get_logger("scripts.seed_data")


CATEGORIES = [
    {"name": "Computer Science", "slug": "computer-science", "icon": "💻"},
    {"name": "Mathematics", "slug": "mathematics", "icon": "📐"},
    {"name": "Physics", "slug": "physics", "icon": "⚛️"},
    {"name": "Chemistry", "slug": "chemistry", "icon": "🧪"},
    {"name": "Electronics", "slug": "electronics", "icon": "🔌"},
    {"name": "Civil Engineering", "slug": "civil-engineering", "icon": "🏗️"},
    {"name": "Mechanical", "slug": "mechanical", "icon": "⚙️"},
    {"name": "Biology", "slug": "biology", "icon": "🧬"},
]

UNIVERSITIES = [
    {"name": "Pt. Ravishankar Shukla University", "short_name": "PRSU", "city": "Raipur"},
    {"name": "Chhattisgarh Swami Vivekanand Technical University", "short_name": "CSVTU", "city": "Bhilai"},
    {"name": "Guru Ghasidas University", "short_name": "GGU", "city": "Bilaspur"},
    {"name": "Delhi University", "short_name": "DU", "city": "New Delhi"},
    {"name": "IIT Bombay", "short_name": "IITB", "city": "Mumbai"},
]

USERS = [
    {"email": "admin@notevault.app", "full_name": "Admin User", "is_admin": True, "is_seller": True},
    {"email": "seller@notevault.app", "full_name": "Rahul Sharma", "is_admin": False, "is_seller": True},
    {"email": "buyer@notevault.app", "full_name": "Priya Patel", "is_admin": False, "is_seller": False},
]

DEMO_NOTES = [
    {
        "title": "Data Structures Complete Notes",
        "subject": "Data Structures",
        "degree": "BTech",
        "semester": 3,
        "category": "computer-science",
        "total_pages": 120,
        "price_inr": 149,
        "tags": ["dsa", "trees", "graphs"],
    },
    {
        "title": "Engineering Mathematics II",
        "subject": "Mathematics",
        "degree": "BTech",
        "semester": 2,
        "category": "mathematics",
        "total_pages": 45,
        "price_inr": 79,
        "tags": ["calculus", "laplace"],
    },
    {
        "title": "Operating Systems Handwritten Notes",
        "subject": "Operating Systems",
        "degree": "BTech",
        "semester": 5,
        "category": "computer-science",
        "total_pages": 210,
        "price_inr": 199,
        "tags": ["os", "scheduling", "memory"],
    },
    {
        "title": "Organic Chemistry Reactions Summary",
        "subject": "Chemistry",
        "degree": "BSc",
        "semester": 1,
        "category": "chemistry",
        "total_pages": 60,
        "price_inr": 99,
        "tags": ["organic", "reactions"],
    },
]


async def seed(password: str) -> None:
    async with async_session_maker() as session:
        categories: dict[str, Category] = {}
        for data in CATEGORIES:
            result = await session.execute(select(Category).where(Category.slug == data["slug"]))
            category = result.scalar_one_or_none()
            if category is None:
                category = Category(**data)
                session.add(category)
            categories[data["slug"]] = category

        universities: list[University] = []
        for data in UNIVERSITIES:
            result = await session.execute(select(University).where(University.name == data["name"]))
            university = result.scalar_one_or_none()
            if university is None:
                university = University(**data)
                session.add(university)
            universities.append(university)
        await session.flush()

        password_hash = get_password_hash(password)
        users: dict[str, User] = {}
        for data in USERS:
            result = await session.execute(select(User).where(User.email == data["email"]))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(
                    password_hash=password_hash,
                    university_id=universities[0].id,
                    college_name="Seed College",
                    degree="BTech",
                    current_semester=3,
                    referral_code=generate_referral_code(),
                    is_verified=True,
                    **data,
                )
                session.add(user)
                logger.info("User created", email=data["email"])
            users[data["email"]] = user
        await session.flush()

        seller = users["seller@notevault.app"]
        wallet = await session.execute(select(SellerWallet).where(SellerWallet.seller_id == seller.id))
        if wallet.scalar_one_or_none() is None:
            session.add(
                SellerWallet(
                    seller_id=seller.id,
                    minimum_withdrawal_amount=settings.minimum_withdrawal_inr,
                )
            )

        for data in DEMO_NOTES:
            result = await session.execute(
                select(Note.id).where(Note.seller_id == seller.id, Note.title == data["title"])
            )
            if result.first() is not None:
                continue

            pct, commission, earning = calculate_commission(data["price_inr"], data["total_pages"])
            session.add(
                Note(
                    seller_id=seller.id,
                    category_id=categories[data["category"]].id,
                    university_id=universities[0].id,
                    title=data["title"],
                    description=f"Exam-focused notes for {data['subject']}.",
                    subject=data["subject"],
                    degree=data["degree"],
                    semester=data["semester"],
                    tags=data["tags"],
                    total_pages=data["total_pages"],
                    price_inr=data["price_inr"],
                    commission_percentage=pct,
                    commission_amount_inr=commission,
                    seller_earning_inr=earning,
                    file_url=f"notes/seed/{data['category']}.pdf",
                    file_type="pdf",
                )
            )

        await session.commit()
        logger.info(
            "Seed complete",
            categories=len(categories),
            universities=len(universities),
            users=len(users),
        )


async def _run(password: str) -> None:
    try:
        await init_db()
        await seed(password)
    finally:
        await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--password", default="Password@123", help="Password for the seeded accounts")
    args = parser.parse_args()

    configure_logging()
    try:
        asyncio.run(_run(args.password))
    except SQLAlchemyError as e:
        logger.error("Seeding failed", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
