from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Favorite(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="favorites",
    )
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="favorites",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["user", "property"], name="unique_favorite_per_user"),
        ]

    def __str__(self):
        return f"{self.user_id} likes {self.property_id}"


class Rating(models.Model):
    """One score per user and listing; resubmitting updates it."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="ratings",
    )
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="ratings",
    )
    score = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-updated_at", "-id"]
        constraints = [
            models.UniqueConstraint(fields=["user", "property"], name="unique_rating_per_user"),
        ]

    def __str__(self):
        return f"{self.score}/5 for {self.property_id}"


class Complaint(models.Model):
    MISLEADING_INFO = "misleading_info"
    PROPERTY_CONDITION = "property_condition"
    SAFETY_CONCERNS = "safety_concerns"
    HARASSMENT = "harassment"
    FRAUD = "fraud"
    OTHER = "other"
    CATEGORIES = [
        (MISLEADING_INFO, "Misleading information"),
        (PROPERTY_CONDITION, "Property condition"),
        (SAFETY_CONCERNS, "Safety concerns"),
        (HARASSMENT, "Harassment"),
        (FRAUD, "Fraud"),
        (OTHER, "Other"),
    ]

    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    STATUSES = [
        (PENDING, "Pending"),
        (REVIEWED, "Reviewed"),
        (RESOLVED, "Resolved"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="complaints",
    )
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="complaints",
    )
    category = models.CharField(max_length=30, choices=CATEGORIES)
    description = models.TextField()
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    admin_notes = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_complaints",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.category} on {self.property_id} ({self.status})"


class PropertyView(models.Model):
    """A signed-in visitor's view of a listing; anonymous views only bump the counter."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="property_views",
    )
    property = models.ForeignKey(
        "properties.Property",
        on_delete=models.CASCADE,
        related_name="tracked_views",
    )
    duration_seconds = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
