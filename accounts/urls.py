"""URL patterns for the accounts app."""

from django.urls import path

from . import views

app_name = 'accounts'

urlpatterns = [
    path('register/', views.user_register, name='register'),
    path('login/', views.CustomTokenObtainPairView.as_view(), name='login'),
    path('me/', views.user_profile, name='profile'),
    path('leaderboard/', views.leaderboard, name='leaderboard'),
]

# API endpoint documentation:
# /api/accounts/register/
#   POST: Register a citizen or government user
#
# /api/accounts/login/
#   POST: Obtain JWT access/refresh tokens (email + password)
#
# /api/accounts/me/
#   GET: Current user's profile
#   PATCH: Update name, department, phone, address or photo
#
# /api/accounts/leaderboard/
#   GET: Top profiles by coins or reports
