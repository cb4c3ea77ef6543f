from .auth import User, PLANS, SUBSCRIPTION_STATUSES
from .books import Book, Transaction, AccountSubject, SubAccount, Receipt, EXPORT_FORMATS, TRANSACTION_TYPES, TAX_TYPES
from .recipients import Recipient, RecipientBookAssignment
from .coupons import Coupon, CouponRedemption, DISCOUNT_TYPES

__all__ = [
    'User', 'PLANS', 'SUBSCRIPTION_STATUSES',
    'Book', 'Transaction', 'AccountSubject', 'SubAccount', 'Receipt',
    'EXPORT_FORMATS', 'TRANSACTION_TYPES', 'TAX_TYPES',
    'Recipient', 'RecipientBookAssignment',
    'Coupon', 'CouponRedemption', 'DISCOUNT_TYPES',
]
