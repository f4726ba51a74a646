from django import forms
from django.contrib import admin
from django.contrib.auth.hashers import make_password
from django.urls import reverse
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateTimeFilter

from .models import Company, Store, User, Session


class StoreInline(TabularInline):
    model = Store
    extra = 0
    fields = ('name', 'code', 'phone', 'is_active')


@admin.register(Company)
class CompanyAdmin(ModelAdmin):
    list_display = ['id', 'name', 'email', 'store_count', 'active_badge', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name', 'email']
    inlines = [StoreInline]

    @display(description=_("Stores"))
    def store_count(self, obj):
        return obj.stores.count()

    @display(description=_("Status"), label=True)
    def active_badge(self, obj):
        if obj.is_active:
            return 'success', _("Active")
        return 'danger', _("Inactive")


@admin.register(Store)
class StoreAdmin(ModelAdmin):
    list_display = ['id', 'name', 'code', 'company', 'is_active']
    list_filter = ['is_active', 'company']
    search_fields = ['name', 'code', 'company__name']


class UserAdminForm(forms.ModelForm):
    password = forms.CharField(
        label=_("Password"),
        widget=forms.PasswordInput,
        required=False,
    )

    class Meta:
        model = User
        fields = '__all__'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance and self.instance.pk:
            self.fields['password'].help_text = _("Leave blank to keep the current password.")
        else:
            self.fields['password'].required = True

    def clean_password(self):
        password = self.cleaned_data.get('password')
        if self.instance.pk and not password:
            return None
        if password and len(password) < 6:
            raise forms.ValidationError(_("Password must be at least 6 characters long."))
        return password

    def save(self, commit=True):
        password = self.cleaned_data.get('password')
        user = super().save(commit=False)
        if password:
            user.password = make_password(password)
        elif user.pk:
            user.password = User.objects.values_list('password', flat=True).get(pk=user.pk)
        if commit:
            user.save()
        return user


@admin.register(User)
class UserAdmin(ModelAdmin):
    form = UserAdminForm
    list_display = ['id', 'full_name', 'email', 'company', 'role_badge', 'status_badge', 'last_login_at']
    list_filter = [
        'role',
        'status',
        ('last_login_at', RangeDateTimeFilter),
    ]
    search_fields = ['first_name', 'last_name', 'email']
    list_filter_submit = True

    fieldsets = (
        (_('Personal Information'), {
            'fields': ('first_name', 'last_name', 'email'),
            'classes': ['tab'],
        }),
        (_('Access'), {
            'fields': ('company', 'store', 'role', 'status', 'password'),
            'classes': ['tab'],
        }),
        (_('Activity Tracking'), {
            'fields': ('last_login_at', 'last_login_ip'),
            'classes': ['tab'],
        }),
    )
    readonly_fields = ['last_login_at', 'last_login_ip']

    @display(description=_("Role"), label=True)
    def role_badge(self, obj):
        colors = {
            'OWNER': 'danger',
            'MANAGER': 'warning',
            'CASHIER': 'success',
        }
        return colors.get(obj.role, 'info'), obj.get_role_display()

    @display(description=_("Status"), label=True)
    def status_badge(self, obj):
        if obj.status == User.UserStatus.ACTIVE:
            return 'success', obj.get_status_display()
        return 'danger', obj.get_status_display()


@admin.register(Session)
class SessionAdmin(ModelAdmin):
    list_display = ['id', 'user_link', 'ip_address', 'user_agent', 'last_activity']
    list_filter = [
        ('last_activity', RangeDateTimeFilter),
    ]
    search_fields = ['ip_address', 'user_agent']
    list_filter_submit = True
    readonly_fields = ['payload', 'last_activity']

    @display(description=_("User"))
    def user_link(self, obj):
        url = reverse('admin:main_user_change', args=[obj.user_id])
        return format_html('<a href="{}">{}</a>', url, obj.user)
