import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from api.pagination import StandardResultsSetPagination
from api.permissions import IsStoreAdmin
from .serializers import (
    CancelOrderRequestSerializer,
    OrderSerializer,
    OrderSummarySerializer,
    UpdateOrderStatusRequestSerializer,
)
from .services import (
    cancel_order,
    customer_orders,
    get_order,
    get_statistics,
    list_orders,
    update_order_status,
)

logger = logging.getLogger(__name__)


# Orders placed with an email address (storefront "my orders")
@api_view(['GET'])
@permission_classes([AllowAny])
def getOrders(request):
    orders = customer_orders(request.query_params.get('email'))
    serializer = OrderSerializer(orders, many=True)
    return Response({"success": True, "count": len(serializer.data), "orders": serializer.data},
                    status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([AllowAny])
def getOrder(request, order_id):
    order = get_order(order_id)
    return Response({"success": True, "order": OrderSerializer(order).data}, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([AllowAny])
def cancelOrder(request, order_id):
    serializer = CancelOrderRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = cancel_order(order_id, serializer.validated_data['reason'], cancelled_by='customer')
    return Response({
        "success": True,
        "message": "Order cancelled successfully",
        "order": OrderSerializer(order).data,
    }, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsStoreAdmin])
def getAllOrders(request):
    queryset = list_orders(request.query_params)
    paginator = StandardResultsSetPagination()
    page = paginator.paginate_queryset(queryset, request)
    serializer = OrderSummarySerializer(page, many=True)
    return paginator.get_paginated_response(serializer.data)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsStoreAdmin])
def updateOrderStatus(request, order_id):
    serializer = UpdateOrderStatusRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order = update_order_status(order_id, data['status'], data['tracking_number'])
    return Response({
        "success": True,
        "message": "Order status updated successfully",
        "order": OrderSerializer(order).data,
    }, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsStoreAdmin])
def getOrderStatistics(request):
    return Response({"success": True, "statistics": get_statistics()}, status=status.HTTP_200_OK)
