from django.urls import path
from . import views

urlpatterns = [
    path('admin/orders/<int:order_id>/refund/', views.processRefund, name='processRefund'),
    path('admin/orders/<int:order_id>/refund-status/', views.updateRefundStatus, name='updateRefundStatus'),
]
