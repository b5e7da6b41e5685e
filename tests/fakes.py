from payment.gateway import GatewayError, PaymentGateway


class FakeGateway(PaymentGateway):
    """In-memory gateway; state lives on the class because the code builds a fresh instance per call."""
    calls = []
    fail_intents = False
    fail_refunds = False
    valid_signature = 'valid-signature'

    @classmethod
    def reset(cls):
        cls.calls = []
        cls.fail_intents = False
        cls.fail_refunds = False

    def create_intent(self, amount, currency, metadata, idempotency_key=None):
        self.calls.append(('create_intent', amount, idempotency_key))
        if self.fail_intents:
            raise GatewayError('gateway timed out')
        return f"order_fake_{idempotency_key}"

    def verify_signature(self, order_ref, payment_ref, signature):
        self.calls.append(('verify_signature', order_ref, payment_ref))
        return signature == self.valid_signature

    def refund(self, payment_ref, amount, metadata, idempotency_key=None):
        self.calls.append(('refund', payment_ref, amount, idempotency_key))
        if self.fail_refunds:
            raise GatewayError('refund service unavailable')
        return {'refund_id': f"rfnd_{idempotency_key}", 'status': 'processed'}
