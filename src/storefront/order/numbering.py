"""Human-readable order numbers: ``ORD-YYYYMMDD-NNNNN``.

The suffix is random; a same-day collision is possible but negligible and is
not checked for.
"""

import random
import re
from datetime import datetime

from storefront.shared.clock import utc_now

ORDER_NUMBER_PATTERN = re.compile(r"^ORD-\d{8}-\d{5}$")


def generate_order_number(now: datetime | None = None, rng: random.Random | None = None) -> str:
    now = now or utc_now()
    suffix = (rng or random).randint(0, 99999)
    return f"ORD-{now:%Y%m%d}-{suffix:05d}"
