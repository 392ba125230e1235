"""
URL configuration for the accounts app.

All routes are exposed under '/api/auth/' as configured in backend/urls.py.
Sessions are carried by the ``wb_session`` cookie (or a bearer token); the
public endpoints are signup, login, logout and magic link redemption.
"""

from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [
    # Account creation and password sign-in; both start a session
    path('signup/', views.signup_view, name='signup'),
    path('login/', views.login_view, name='login'),

    # Ends the session and clears the session and active org cookies
    path('logout/', views.logout_view, name='logout'),

    # Current user and the role held in the active organization
    path('me/', views.me_view, name='me'),

    # User, organizations and billing snapshot for the app shell
    path('session/', views.session_view, name='session'),

    # Select another organization as the active one
    path('switch-org/', views.switch_org_view, name='switch_org'),

    # Join an organization with an invitation token
    path('redeem-magic-link/', views.redeem_magic_link_view, name='redeem_magic_link'),
]

# Complete list of generated API endpoints:
#
# - POST   /api/auth/signup/             → Create account, personal workspace and session
# - POST   /api/auth/login/              → Authenticate credentials and create session
# - POST   /api/auth/logout/             → Delete session and clear cookies
# - GET    /api/auth/me/                 → Current user with active-org role
# - GET    /api/auth/session/            → User, organizations, active org, billing snapshot
# - POST   /api/auth/switch-org/         → Change the active organization
# - POST   /api/auth/redeem-magic-link/  → Redeem an org invitation link
