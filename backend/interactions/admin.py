from django.contrib import admin

from .models import Complaint, Favorite, PropertyView, Rating


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ("property", "user", "category", "status", "created_at")
    list_filter = ("status", "category")
    search_fields = ("property__title", "user__email", "description")
    readonly_fields = ("reviewed_by", "created_at", "updated_at")


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ("property", "user", "score", "updated_at")
    list_filter = ("score",)


admin.site.register(Favorite)
admin.site.register(PropertyView)
