from django.urls import path
from . import views

urlpatterns = [
    path('create-order/', views.createOrder, name='createOrder'),
    path('create-cod-order/', views.createCODOrder, name='createCODOrder'),
    path('verify/', views.verifyPayment, name='verifyPayment'),
    path('orders/<int:order_id>/payment-failed/', views.markPaymentFailed, name='markPaymentFailed'),
    path('settings/', views.storeSettings, name='storeSettings'),
]
