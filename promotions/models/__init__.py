from promotions.models.customer import Customer
from promotions.models.address import Address
from promotions.models.category import Category, CategoryRelation
from promotions.models.purchasable import Purchasable
from promotions.models.payment_currency import PaymentCurrency
from promotions.models.discount import (
    AppliedTo,
    BaseDiscountType,
    CategoryRelationshipType,
    Discount,
    DiscountCategory,
    DiscountPurchasable,
    PercentageOffSubject,
)
from promotions.models.coupon import Coupon
from promotions.models.discount_use import CustomerDiscountUse, EmailDiscountUse
from promotions.models.order import AdjustmentType, LineItem, Order, OrderAdjustment
