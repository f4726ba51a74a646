from django.urls import path
from main.views import auth_views, store_views


app_name = 'main'


urlpatterns = [
    path('auth/login', auth_views.login, name='login'),
    path('auth/logout', auth_views.logout, name='logout'),
    path('auth/me', auth_views.me, name='me'),

    path('stores', store_views.list_stores, name='store-list'),
]
