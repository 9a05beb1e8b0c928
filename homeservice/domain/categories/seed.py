"""Master category catalogue seeded into service_categories on startup"""

import logging

from sqlalchemy.orm import Session

from ...constants import category_slug, slugify
from ...models import ServiceCategory

logger = logging.getLogger(__name__)

MASTER_CATEGORIES = [
    {
        "name": "Hair",
        "description": "Haircuts, styling, colouring and treatments",
        "icon": "scissors",
        "color": "#E91E63",
        "featured": True,
        "subcategories": ["Haircut", "Hair Styling", "Hair Colouring", "Hair Treatment", "Blow Dry"],
    },
    {
        "name": "Makeup",
        "description": "Bridal, party and everyday makeup",
        "icon": "brush",
        "color": "#9C27B0",
        "featured": True,
        "subcategories": ["Bridal Makeup", "Party Makeup", "Everyday Makeup", "Airbrush Makeup"],
    },
    {
        "name": "Nails",
        "description": "Manicures, pedicures and nail art",
        "icon": "hand",
        "color": "#FF5722",
        "featured": True,
        "subcategories": ["Manicure", "Pedicure", "Gel Nails", "Nail Art", "Nail Extensions"],
    },
    {
        "name": "Skin & Aesthetics",
        "description": "Facials, peels and skin care treatments",
        "icon": "sparkles",
        "color": "#03A9F4",
        "featured": False,
        "subcategories": ["Facial", "Chemical Peel", "Microdermabrasion", "Skin Consultation"],
    },
    {
        "name": "Massage & Body",
        "description": "Massage therapy and body treatments",
        "icon": "spa",
        "color": "#4CAF50",
        "featured": False,
        "subcategories": ["Swedish Massage", "Deep Tissue Massage", "Body Scrub", "Aromatherapy"],
    },
    {
        "name": "Personal Care",
        "description": "Waxing, threading and grooming",
        "icon": "user",
        "color": "#795548",
        "featured": False,
        "subcategories": ["Waxing", "Threading", "Eyebrow Shaping", "Lash Extensions"],
    },
]


def _subcategory(name: str, sort_order: int) -> dict:
    return {
        "name": name,
        "slug": slugify(name),
        "description": name,
        "icon": None,
        "color": None,
        "isActive": True,
        "sortOrder": sort_order,
    }


def seed_categories(db: Session) -> int:
    """Insert any master category that is missing; returns how many were created"""
    existing = {name for (name,) in db.query(ServiceCategory.name).all()}
    created = 0

    for index, entry in enumerate(MASTER_CATEGORIES):
        if entry["name"] in existing:
            continue
        db.add(
            ServiceCategory(
                name=entry["name"],
                slug=category_slug(entry["name"]),
                description=entry["description"],
                icon=entry["icon"],
                color=entry["color"],
                sort_order=index + 1,
                is_active=True,
                is_featured=entry["featured"],
                subcategories=[_subcategory(name, i + 1) for i, name in enumerate(entry["subcategories"])],
            )
        )
        created += 1

    if created:
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"🌱 Seeded {created} service categories")
    return created
