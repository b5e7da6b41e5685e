from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from api.permissions import IsStoreAdmin
from .serializers import RefundRequestSerializer, RefundStatusRequestSerializer, RefundSummarySerializer
from .service import request_refund, update_refund_status


@api_view(['POST'])
@permission_classes([IsStoreAdmin])
def processRefund(request, order_id):
    serializer = RefundRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order = request_refund(order_id, data['amount'], data['reason'])
    if order.refund_error:
        message = ('Refund marked as pending. Order has been cancelled. Payment gateway processing failed '
                   '- manual action required.')
    else:
        message = 'Refund initiated successfully. Order has been cancelled.'
    return Response({"success": True, "message": message, "refund": RefundSummarySerializer(order).data},
                    status=status.HTTP_200_OK)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsStoreAdmin])
def updateRefundStatus(request, order_id):
    serializer = RefundStatusRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = update_refund_status(order_id, serializer.validated_data['refund_status'])
    return Response({"success": True, "message": "Refund status updated successfully",
                     "refund": RefundSummarySerializer(order).data}, status=status.HTTP_200_OK)
