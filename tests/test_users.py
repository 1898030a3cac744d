from billing.schemas.user import UserProfile
from billing.services.user_service import get_user, set_subscription_pointer, upsert_user


def test_document_shape_parses_camel_case():
    profile = UserProfile.from_document(
        {
            "id": "u1",
            "email": "riya@example.com",
            "role": "admin",
            "instagramHandle": "@riya",
            "photoURL": "https://cdn.example.com/riya.png",
            "businessName": "Riya Crafts",
            "subscription": {"id": "sub_1", "status": "active", "packageId": "pkg_growth"},
        }
    )
    assert profile.role == "Admin"
    assert profile.is_admin_user is True
    assert profile.instagram_handle == "@riya"
    assert profile.photo_url == "https://cdn.example.com/riya.png"
    assert profile.subscription_id == "sub_1"
    assert profile.subscription_status == "active"
    assert profile.subscription_package == "pkg_growth"


def test_row_and_document_describe_the_same_user():
    row = {"id": "u2", "role": "staff", "instagram_handle": "@dev", "subscription_status": "cancelled"}
    profile = UserProfile.from_row(row)
    assert profile.role == "staff"
    assert profile.is_admin_user is False

    doc = profile.to_document()
    assert doc["instagramHandle"] == "@dev"
    assert doc["subscriptionStatus"] == "cancelled"
    assert UserProfile.from_document(doc) == profile


def test_missing_role_defaults_to_user():
    assert UserProfile.from_document({"id": "u3", "role": None}).role == "User"


async def test_upsert_and_pointer(db):
    user = await upsert_user(db, UserProfile(id="u4", email="u4@example.com", role="Influencer"))
    assert user.role == "Influencer"

    await upsert_user(db, UserProfile(id="u4", email="u4@example.com", name="Updated"))
    assert (await get_user(db, "u4")).name == "Updated"

    assert await set_subscription_pointer(db, "u4", "sub_9", "active", "pkg_basic") is True
    assert (await get_user(db, "u4")).subscription_id == "sub_9"
    assert await set_subscription_pointer(db, "nobody", "sub_9", "active", "pkg_basic") is False
