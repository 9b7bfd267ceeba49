from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from bookings.models import Booking
from interactions.models import Rating
from properties.models import Property


SEED_PASSWORD = "Marketplace123!"
SUPERUSER_EMAIL = "admin@rentals.test"
SUPERUSER_PASSWORD = "AdminMarketplace123!"


class Command(BaseCommand):
    help = "Populate the local development database with sample listings and bookings."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Ensuring admin superuser"))
            admin = self._ensure_superuser()

            self.stdout.write(self.style.MIGRATE_HEADING("Creating owners & tenants"))
            owner = self._ensure_user(
                email="owner@rentals.test",
                first_name="Olivia",
                last_name="Owner",
                role=User.PROPERTY_OWNER,
            )
            tenant = self._ensure_user(
                email="tenant@rentals.test",
                first_name="Tariq",
                last_name="Tenant",
                role=User.TENANT,
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating listings"))
            annex = self._ensure_property(
                owner=owner,
                title="Lakeside Annex",
                property_type="annex",
                address="12 Lake Road, Kandy",
                price=Decimal("450.00"),
                bedrooms=1,
                bathrooms=1,
            )
            if annex.approval_status != Property.APPROVED:
                annex.approve(by=admin, reason="Seeded listing")
            self._ensure_property(
                owner=owner,
                title="Hill Cottage",
                property_type="house",
                address="3 Hill Street, Ella",
                price=Decimal("300.00"),
                bedrooms=2,
                bathrooms=1,
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating bookings"))
            check_in = timezone.localdate() + timedelta(days=14)
            _, created = Booking.objects.get_or_create(
                renter=tenant,
                property=annex,
                check_in=check_in,
                defaults={
                    "property_owner": owner,
                    "guest_name": tenant.get_full_name(),
                    "email": tenant.email,
                    "check_out": check_in + timedelta(days=90),
                    "guests": 2,
                    "advance_amount": annex.price,
                    "total_amount": annex.price * 3,
                    "currency": annex.currency,
                },
            )
            if created:
                self.stdout.write(self.style.NOTICE(f"Booked {annex.title} for {tenant.email}"))

            self.stdout.write(self.style.MIGRATE_HEADING("Creating ratings"))
            Rating.objects.get_or_create(
                user=tenant,
                property=annex,
                defaults={"score": 5, "comment": "Quiet and close to the lake."},
            )

        self.stdout.write(self.style.SUCCESS("Development seed data created."))
        self.stdout.write(self.style.NOTICE(f"Sample login accounts use password: {SEED_PASSWORD}"))
        self.stdout.write(self.style.NOTICE(f"Admin superuser {SUPERUSER_EMAIL} password: {SUPERUSER_PASSWORD}"))

    def _ensure_user(self, *, email: str, first_name: str, last_name: str, role: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": f"{first_name} {last_name}",
                "role": role,
            },
        )
        if created:
            user.set_password(SEED_PASSWORD)
            user.save()
        elif user.role != role:
            user.role = role
            user.save(update_fields=["role"])
        return user

    def _ensure_property(self, *, owner: User, title: str, price: Decimal, **fields) -> Property:
        listing, created = Property.objects.get_or_create(
            owner=owner,
            title=title,
            defaults={
                "price": price,
                "description": f"Sample listing for {title}.",
                **fields,
            },
        )
        if not created and listing.price != price:
            listing.price = price
            listing.save(update_fields=["price", "updated_at"])
        return listing

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Admin",
                "last_name": "User",
                "display_name": "Admin User",
                "role": User.ADMIN,
                "is_staff": True,
                "is_superuser": True,
            },
        )
        flag_updates = {}
        if not user.is_staff:
            flag_updates["is_staff"] = True
        if not user.is_superuser:
            flag_updates["is_superuser"] = True
        if flag_updates:
            for attr, value in flag_updates.items():
                setattr(user, attr, value)
            user.save(update_fields=list(flag_updates.keys()))
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
