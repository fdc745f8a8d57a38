from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Profile


class ProfileInline(admin.StackedInline):
    model = Profile
    can_delete = False
    fields = ('name', 'email', 'phone', 'role', 'permissions')


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    ordering = ['email']
    list_display = ['email', 'full_name', 'phone', 'role', 'is_active', 'date_joined']
    list_filter = ['profile__role', 'is_active', 'is_staff']
    search_fields = ['email', 'full_name', 'phone']
    inlines = [ProfileInline]

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal info', {'fields': ('full_name', 'phone')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2'),
        }),
    )


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ['email', 'name', 'phone', 'role', 'created_at']
    list_filter = ['role']
    search_fields = ['email', 'name', 'phone']
    readonly_fields = ['created_at', 'updated_at']
