"""
First-start seeding.

When the user table is empty, create the default currencies, payment
methods, the head office branch with its default revenue and
expenditure heads, the three system roles and, if credentials are
configured, the default administrator.
"""

import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from branch_finance.config import Settings
from branch_finance.models.enums import ExpenditureCategory
from branch_finance.models.reference import (
    Branch,
    Currency,
    PaymentMethod,
    RevenueHead,
    ExpenditureHead,
)
from branch_finance.models.user import Role, User
from branch_finance.services.identifier_service import IdentifierService
from branch_finance.services.permissions import (
    CAPABILITY_SCHEMA_VERSION,
    SYSTEM_ROLES,
)
from branch_finance.services.security import hash_password

logger = logging.getLogger(__name__)

DEFAULT_CURRENCIES = [
    {"code": "ZIG", "name": "Zimbabwe Gold", "symbol": "ZIG", "is_base_currency": True},
    {"code": "USD", "name": "US Dollar", "symbol": "$"},
    {"code": "ZAR", "name": "South African Rand", "symbol": "R"},
    {"code": "GBP", "name": "British Pound", "symbol": "£"},
    {"code": "ZWL", "name": "Zimbabwe Dollar", "symbol": "ZWL"},
]

DEFAULT_PAYMENT_METHODS = [
    ("Cash", "Physical cash payment"),
    ("Ecocash", "Ecocash mobile money"),
    ("One Money", "One Money mobile money"),
    ("Telecash", "Telecel mobile money"),
    ("Bank Transfer", "Direct bank transfer"),
    ("Card Swipe", "Card payment via POS"),
    ("PayPal", "PayPal online payment"),
]

DEFAULT_REVENUE_HEADS = ["Tithes", "Pledges", "Offerings", "Seeds", "Donations"]

DEFAULT_EXPENDITURE_HEADS = [
    ("Salaries", ExpenditureCategory.PERSONNEL),
    ("Utilities", ExpenditureCategory.UTILITIES),
    ("Maintenance", ExpenditureCategory.MAINTENANCE),
    ("Office Supplies", ExpenditureCategory.ADMINISTRATIVE),
    ("Travel", ExpenditureCategory.OPERATIONAL),
]


def seed_system_roles(db: Session) -> dict[str, Role]:
    """Create any missing system role. Existing roles are left alone."""
    roles = {}
    for name, definition in SYSTEM_ROLES.items():
        role = db.execute(select(Role).where(Role.name == name)).scalar_one_or_none()
        if role is None:
            role = Role(
                name=name,
                display_name=definition["display_name"],
                description=definition["description"],
                permissions=definition["permissions"],
                schema_version=CAPABILITY_SCHEMA_VERSION,
                is_active=True,
            )
            db.add(role)
        roles[name] = role
    db.flush()
    return roles


def seed_defaults(db: Session, settings: Settings) -> bool:
    """
    Seed default data on an empty database.

    Returns True when seeding ran. The caller commits.
    """
    if db.execute(select(func.count(User.id))).scalar_one() > 0:
        return False

    logger.info("Initializing default system data...")

    for currency in DEFAULT_CURRENCIES:
        if db.get(Currency, currency["code"]) is None:
            db.add(Currency(**currency))

    existing_methods = set(db.execute(select(PaymentMethod.name)).scalars())
    for name, description in DEFAULT_PAYMENT_METHODS:
        if name not in existing_methods:
            db.add(PaymentMethod(name=name, description=description))

    branch_code = settings.DEFAULT_ADMIN_BRANCH
    if db.get(Branch, branch_code) is None:
        db.add(Branch(code=branch_code, name="Head Office", is_active=True))
    db.flush()
    logger.info("Default branch ready: %s", branch_code)

    identifiers = IdentifierService(db, settings.TIMEZONE)
    if not db.execute(
        select(RevenueHead).where(RevenueHead.branch_code == branch_code)
    ).first():
        for name in DEFAULT_REVENUE_HEADS:
            db.add(RevenueHead(
                code=identifiers.allocate_code("revenue_head", branch_code),
                name=name,
                branch_code=branch_code,
            ))
    if not db.execute(
        select(ExpenditureHead).where(ExpenditureHead.branch_code == branch_code)
    ).first():
        for name, category in DEFAULT_EXPENDITURE_HEADS:
            db.add(ExpenditureHead(
                code=identifiers.allocate_code("expenditure_head", branch_code),
                name=name,
                category=category,
                branch_code=branch_code,
            ))

    roles = seed_system_roles(db)

    if settings.DEFAULT_ADMIN_USERNAME and settings.DEFAULT_ADMIN_PASSWORD:
        db.add(User(
            username=settings.DEFAULT_ADMIN_USERNAME,
            password_hash=hash_password(
                settings.DEFAULT_ADMIN_PASSWORD, settings.BCRYPT_ROUNDS
            ),
            first_name="System",
            last_name="Administrator",
            role_id=roles["admin"].id,
            branch_code=branch_code,
            is_active=True,
            created_by="system",
        ))
        logger.warning(
            "Default admin user '%s' created. Change its password immediately.",
            settings.DEFAULT_ADMIN_USERNAME,
        )
    else:
        logger.warning(
            "DEFAULT_ADMIN_USERNAME/DEFAULT_ADMIN_PASSWORD not set; "
            "no administrator was created"
        )

    db.flush()
    logger.info("Default system data initialized")
    return True
