"""Admin seed script: creates a local admin user and sample packages for testing.

Bypasses the sign-up flow so the admin and checkout routes can be exercised
locally.

Usage:
    python -m billing.admin_seed
    billing seed-admin
"""

import asyncio

SAMPLE_PACKAGES = [
    {
        "id": "pkg_business_basic",
        "title": "Business Basic",
        "type": "Business",
        "payment_type": "one-time",
        "price": 999,
        "duration_months": 12,
        "features": ["Business listing", "Contact details"],
    },
    {
        "id": "pkg_business_growth",
        "title": "Business Growth",
        "type": "Business",
        "payment_type": "recurring",
        "billing_cycle": "monthly",
        "price": 5988,
        "monthly_price": 499,
        "setup_fee": 200,
        "advance_payment_months": 1,
        "duration_months": 12,
        "features": ["Featured listing", "Analytics dashboard", "Priority support"],
        "popular": True,
    },
]


async def main():
    # Ensure .env is loaded before importing settings
    from dotenv import load_dotenv
    load_dotenv()

    from billing.db.session import async_session_factory, engine
    from billing.models import Base
    from billing.models.user import User
    from billing.schemas.package import PackageData
    from billing.services.auth_service import create_jwt
    from billing.services.package_service import save_package
    from billing.services.user_service import get_user

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        existing = await get_user(db, "admin_local")
        if existing:
            print(f"Admin user already exists (id={existing.id}, {existing.email})")
        else:
            user = User(
                id="admin_local",
                email="admin@localhost",
                name="Local Admin",
                role="Admin",
                is_admin=True,
            )
            db.add(user)
            await db.commit()
            print(f"Admin user created (id={user.id})")

            for data in SAMPLE_PACKAGES:
                package = await save_package(db, PackageData.model_validate(data))
                print(f"  package: {package.id} ({package.payment_type}, {package.price:,.2f})")

        print()
        print("Session token (send as 'Authorization: Bearer <token>'):")
        print(f"  {create_jwt('admin_local')}")
        print()
        print("Next steps:")
        print("  1. Start the API:  uvicorn billing.app:app --reload")
        print("  2. Open:  http://localhost:8000/docs  (DEBUG=true)")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
