from django.urls import path
from . import views

app_name = "user"

urlpatterns = [
    path("auth/csrf/", views.csrf_view, name="csrf"),
    path("auth/register/", views.register_view, name="register"),
    path("auth/login/", views.login_view, name="login"),
    path("auth/logout/", views.logout_view, name="logout"),
    path("auth/me/", views.me_view, name="me"),
    path("profile/", views.profile_view, name="profile"),
    path("lenders/", views.lender_list, name="lender_list"),
    path("lenders/<int:lender_id>/", views.lender_detail, name="lender_detail"),
]
