from .evaluator import CouponEvaluation, applicable_kind, compute_discount, evaluate_coupon

__all__ = [
    "CouponEvaluation",
    "applicable_kind",
    "compute_discount",
    "evaluate_coupon",
]
