from django.urls import path
from . import views

urlpatterns = [
    path('orders/', views.getOrders, name='getOrders'),
    path('orders/<int:order_id>/', views.getOrder, name='getOrder'),
    path('orders/<int:order_id>/cancel/', views.cancelOrder, name='cancelOrder'),
    path('admin/orders/', views.getAllOrders, name='getAllOrders'),
    path('admin/orders/<int:order_id>/status/', views.updateOrderStatus, name='updateOrderStatus'),
    path('admin/statistics/', views.getOrderStatistics, name='getOrderStatistics'),
]
