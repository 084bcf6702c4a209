import logging
import uuid
from typing import Optional

from .payment_validator import normalize_card_number, validate_payment_details

logger = logging.getLogger(__name__)


class PaymentService:
    """Service xử lý thanh toán thẻ (mô phỏng, không gọi gateway thật)"""

    def __init__(self, reference_prefix: str = "ORD"):
        self.reference_prefix = reference_prefix

    def process_payment(self, card_number: str, card_holder_name: str,
                        expiry_date: str, cvv: str) -> Optional[str]:
        """
        Xử lý payment

        Args:
            card_number: Số thẻ
            card_holder_name: Tên chủ thẻ
            expiry_date: Ngày hết hạn MM/YY
            cvv: Mã CVV

        Returns:
            Order reference nếu thanh toán thành công, None nếu bị từ chối
        """
        if not card_holder_name or not card_holder_name.strip():
            logger.warning("Payment declined: missing card holder name")
            return None

        error = validate_payment_details(card_number, expiry_date, cvv)
        if error:
            logger.warning(f"Payment declined: {error}")
            return None

        # Simulate payment processing
        reference = f"{self.reference_prefix}-{uuid.uuid4().hex[:10].upper()}"
        last_four = normalize_card_number(card_number)[-4:]
        logger.info(f"Payment approved for card ending {last_four}, reference {reference}")
        return reference
