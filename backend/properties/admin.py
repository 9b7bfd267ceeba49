from django.contrib import admin

from .models import Property


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "property_type", "price", "approval_status", "is_active")
    list_filter = ("approval_status", "property_type", "is_active")
    search_fields = ("title", "address", "owner__email")
    readonly_fields = ("approved_by", "approved_at", "created_at", "updated_at")
    actions = ["approve_selected", "reject_selected"]

    @admin.action(description="Approve selected properties")
    def approve_selected(self, request, queryset):
        for prop in queryset:
            prop.approve(by=request.user)

    @admin.action(description="Reject selected properties")
    def reject_selected(self, request, queryset):
        for prop in queryset:
            prop.reject(by=request.user)
