from properties.models import Property


def test_new_listing_awaits_approval(pending_listing):
    assert pending_listing.approval_status == Property.PENDING
    assert pending_listing.is_bookable is False
    assert pending_listing.views_count == 0
    assert pending_listing.amenities == []


def test_approve_makes_listing_bookable(pending_listing, marketplace_admin):
    pending_listing.approve(by=marketplace_admin)

    pending_listing.refresh_from_db()
    assert pending_listing.is_bookable is True
    assert pending_listing.approved_by == marketplace_admin
    assert pending_listing.approved_at is not None
    assert pending_listing.approval_reason == "Property approved by admin"


def test_reject_records_reason(pending_listing, marketplace_admin):
    pending_listing.reject(by=marketplace_admin, reason="Photos missing")

    pending_listing.refresh_from_db()
    assert pending_listing.approval_status == Property.REJECTED
    assert pending_listing.approval_reason == "Photos missing"
    assert pending_listing.approved_at is None
    assert pending_listing.is_bookable is False


def test_inactive_approved_listing_is_not_bookable(listing):
    listing.is_active = False

    assert listing.is_bookable is False
