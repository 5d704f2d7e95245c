from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import Session
from core.config import settings
from core.context import RequestContext
from core.exceptions import StateConflictError, ValidationError
from core.unit_of_work import UnitOfWork
from integrations.vnpay import (IpnResponse, build_payment_url, format_vnpay_date,
                                ipn_response, to_minor_units)
from integrations.vnpay.mapper import gateway_payload, is_success, parse_amount, parse_txn_ref
from models.orders import Order
from models.payments import Payment
from models.enums import CompletionResult, CompletionSource, OrderStatus, PaymentMethod, PaymentStatus
from services.ownership import OwnershipResolver
from services.payment_service import PaymentService
from utils.logger import get_logger

logger = get_logger(__name__)

VNPAY_VERSION = "2.1.0"
VNPAY_COMMAND = "pay"
VNPAY_CURRENCY = "VND"


def _as_utc(moment: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class VnpayService:

    @staticmethod
    def create_payment_url(db: Session, ctx: RequestContext, order_id: int, client_ip: str,
                           bank_code: str | None = None, locale: str = "vn") -> dict:
        """
        Create (or reuse) a PENDING VNPAY payment for an order and build the
        signed redirect URL.

        - latest VNPAY attempt COMPLETED -> refused
        - latest VNPAY attempt PENDING and not expired -> reused
        - otherwise every PENDING attempt (COD included) is retired and a
          fresh one is created, so only one payment is ever open

        vnp_TxnRef is the payment id.
        """
        OwnershipResolver(db).ensure_order_access(ctx, order_id)
        now = datetime.now(timezone.utc)

        with UnitOfWork(db) as uow:
            order = db.query(Order).filter(
                Order.id == order_id,
                Order.deleted_at.is_(None)
            ).populate_existing().with_for_update().one()

            if order.status != OrderStatus.PENDING:
                raise StateConflictError("Only PENDING orders can be paid via VNPAY")

            payment = db.query(Payment).filter(
                Payment.order_id == order_id,
                Payment.payment_method == PaymentMethod.VNPAY,
                Payment.deleted_at.is_(None)
            ).order_by(Payment.id.desc()).populate_existing().with_for_update().first()

            if payment and payment.status == PaymentStatus.COMPLETED:
                raise StateConflictError("Order already paid")

            reusable = (
                payment is not None
                and payment.status == PaymentStatus.PENDING
                and payment.expires_at is not None
                and _as_utc(payment.expires_at) > now
            )

            if not reusable:
                # Supersede whatever is still open, expired attempts included
                PaymentService.cancel_pending_payments(uow, order_id)

                payment = Payment(
                    order_id=order_id,
                    payment_method=PaymentMethod.VNPAY,
                    amount=order.total_amount,
                    status=PaymentStatus.PENDING,
                    gateway=PaymentMethod.VNPAY.value,
                    expires_at=now + timedelta(minutes=settings.VNPAY_EXPIRE_MINUTES)
                )
                db.add(payment)
                uow.flush()
                payment.payment_ref = str(payment.id)
                uow.flush()

            amount = to_minor_units(payment.amount)
            if not amount:
                raise ValidationError("Invalid payment amount")

            params = {
                "vnp_Version": VNPAY_VERSION,
                "vnp_Command": VNPAY_COMMAND,
                "vnp_TmnCode": settings.VNPAY_TMN_CODE,
                "vnp_Amount": amount,
                "vnp_CurrCode": VNPAY_CURRENCY,
                "vnp_TxnRef": str(payment.id),
                "vnp_OrderInfo": f"Thanh toan don hang: {order.id}",
                "vnp_OrderType": "other",
                "vnp_Locale": locale or "vn",
                "vnp_ReturnUrl": settings.VNPAY_RETURN_URL,
                "vnp_IpAddr": client_ip,
                "vnp_CreateDate": format_vnpay_date(now),
                "vnp_ExpireDate": format_vnpay_date(_as_utc(payment.expires_at)),
            }
            if bank_code:
                params["vnp_BankCode"] = bank_code

            payment_id = payment.id
            expires_at = params["vnp_ExpireDate"]

        payment_url = build_payment_url(settings.VNPAY_PAYMENT_URL, params, settings.VNPAY_HASH_SECRET)

        logger.info(
            "VNPAY payment url created",
            extra={"order_id": order_id, "payment_id": payment_id, "reused": reusable}
        )

        return {
            "order_id": order_id,
            "payment_id": payment_id,
            "payment_url": payment_url,
            "expires_at": expires_at,
        }


    @staticmethod
    def handle_ipn(db: Session, params: dict) -> dict:
        """
        Apply a signature-verified VNPAY server callback.

        Responses (RspCode):
        - 01 payment/order unknown, or not a VNPAY payment
        - 04 amount differs from the stored payment
        - 02 payment already processed (completed or retired)
        - 00 failure recorded, or payment completed
        - 99 anything unexpected; the transaction is rolled back
        """
        payment_id = parse_txn_ref(params)
        if payment_id is None:
            return ipn_response(IpnResponse.ORDER_NOT_FOUND)

        payment = db.query(Payment).join(Order, Order.id == Payment.order_id).filter(
            Payment.id == payment_id,
            Payment.deleted_at.is_(None),
            Order.deleted_at.is_(None)
        ).one_or_none()

        if payment is None:
            logger.warning("IPN for unknown payment", extra={"payment_id": payment_id})
            return ipn_response(IpnResponse.ORDER_NOT_FOUND)

        if payment.payment_method != PaymentMethod.VNPAY:
            # COD and other methods are never settled by this gateway
            logger.error(
                "IPN for non-VNPAY payment",
                extra={"payment_id": payment_id, "payment_method": payment.payment_method.value}
            )
            return ipn_response(IpnResponse.ORDER_NOT_FOUND)

        received_amount = parse_amount(params)
        expected_amount = to_minor_units(payment.amount)
        if received_amount is None or received_amount != expected_amount:
            logger.error(
                "IPN amount mismatch",
                extra={"payment_id": payment_id, "received": received_amount, "expected": expected_amount}
            )
            return ipn_response(IpnResponse.INVALID_AMOUNT)

        if payment.status == PaymentStatus.COMPLETED:
            return ipn_response(IpnResponse.ALREADY_CONFIRMED)

        if payment.status == PaymentStatus.INACTIVE:
            # A superseded or cancelled attempt; the gateway may still have charged it
            logger.error(
                "IPN for retired payment",
                extra={"payment_id": payment_id, "response_code": params.get("vnp_ResponseCode")}
            )
            return ipn_response(IpnResponse.ALREADY_CONFIRMED)

        order_id = payment.order_id
        response_code = str(params.get("vnp_ResponseCode") or "")

        try:
            with UnitOfWork(db) as uow:
                # Same lock order as payment completion: order row, then payment row
                db.query(Order).filter(
                    Order.id == order_id
                ).populate_existing().with_for_update().one()
                locked = db.query(Payment).filter(
                    Payment.id == payment_id
                ).populate_existing().with_for_update().one()

                if locked.status != PaymentStatus.PENDING:
                    # Settled by a concurrent callback since the first read
                    return ipn_response(IpnResponse.ALREADY_CONFIRMED)

                locked.gateway = PaymentMethod.VNPAY.value
                locked.gateway_response_code = response_code
                locked.gateway_payload = gateway_payload(params)

                if not is_success(params):
                    locked.status = PaymentStatus.INACTIVE
                    uow.flush()
                    logger.info(
                        "VNPAY reported failed payment",
                        extra={"payment_id": payment_id, "order_id": order_id, "response_code": response_code}
                    )
                    return ipn_response(IpnResponse.CONFIRMED, "Payment failed, order not completed")

                result = PaymentService.complete_order_payment(
                    uow, order_id, CompletionSource.GATEWAY,
                    gateway=PaymentMethod.VNPAY, payment_id=payment_id
                )

        except Exception as e:
            logger.error(
                f"IPN processing failed: {str(e)}",
                extra={"payment_id": payment_id, "order_id": order_id, "error_type": type(e).__name__},
                exc_info=True
            )
            return ipn_response(IpnResponse.UNKNOWN_ERROR)

        if result == CompletionResult.ALREADY_COMPLETED:
            return ipn_response(IpnResponse.ALREADY_CONFIRMED)

        return ipn_response(IpnResponse.CONFIRMED)


    @staticmethod
    def build_return_result(params: dict) -> dict:
        """Display-only summary of a verified browser return. Never writes."""
        return {
            "success": is_success(params),
            "code": str(params.get("vnp_ResponseCode") or ""),
            "transaction_status": str(params.get("vnp_TransactionStatus") or ""),
            "payment_id": str(params.get("vnp_TxnRef") or ""),
            "order_info": str(params.get("vnp_OrderInfo") or ""),
        }
