from django.urls import path
from . import views

app_name = "lending"

urlpatterns = [
    # Borrower
    path("lenders/<int:lender_id>/quote/", views.loan_quote, name="quote"),
    path("loans/", views.loans_view, name="loans"),
    path("loans/<int:loan_id>/", views.loan_detail, name="loan_detail"),
    path("loans/<int:loan_id>/pay/", views.make_payment, name="make_payment"),
    # Lender
    path("loans/<int:loan_id>/approve/", views.approve_loan, name="approve"),
    path("loans/<int:loan_id>/decline/", views.decline_loan, name="decline"),
]
