"""
Cart service layer
Handles shopping cart business logic
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings as app_settings
from app.core.exceptions import (
    NotFoundException,
    EmptyCartException,
    InsufficientStockException,
    ProductUnavailableException,
    ValidationException,
)
from app.models import Cart, CartItem, Product
from app.services.coupon_service import CouponQuote, CouponResolver, get_coupon_resolver
from app.services.pricing import resolve_product_price, round_currency
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

@dataclass
class CartLine:
    """A stored cart item joined with its live product (if it still exists)"""
    item: CartItem
    product: Optional[Product]
    current_price: Optional[Decimal]

    @property
    def is_valid(self) -> bool:
        return self.product is not None and bool(self.product.is_active)

    @property
    def price_at_add(self) -> Decimal:
        return self.item.price_at_add

    @property
    def quantity(self) -> int:
        return self.item.quantity

@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    total_items: int
    coupon_discount: Decimal
    delivery_fee: Decimal
    amount_to_free_delivery: Decimal
    estimated_total: Decimal

def delivery_fee_for(subtotal: Decimal, settings: Settings) -> Decimal:
    """Flat fee below the free-delivery threshold, free at or above it"""
    if subtotal >= settings.FREE_DELIVERY_THRESHOLD:
        return Decimal("0.00")
    return round_currency(settings.DELIVERY_FEE)

def summarize_cart(
    lines: Iterable[CartLine],
    coupon_discount: Optional[Decimal],
    settings: Settings
) -> CartTotals:
    """
    Derive cart totals from its lines.

    Lines whose product is gone or inactive are left out of every figure.
    Prices are the stored price_at_add, not the live price.
    """
    valid = [line for line in lines if line.is_valid]
    subtotal = round_currency(sum((line.price_at_add * line.quantity for line in valid), Decimal("0")))
    total_items = sum(line.quantity for line in valid)
    discount = round_currency(coupon_discount or 0)
    delivery_fee = delivery_fee_for(subtotal, settings)

    return CartTotals(
        subtotal=subtotal,
        total_items=total_items,
        coupon_discount=discount,
        delivery_fee=delivery_fee,
        amount_to_free_delivery=round_currency(max(Decimal("0"), settings.FREE_DELIVERY_THRESHOLD - subtotal)),
        estimated_total=round_currency(max(Decimal("0"), subtotal - discount) + delivery_fee),
    )

class CartService:
    """Shopping cart service"""

    def __init__(
        self,
        db: AsyncSession,
        coupon_resolver: Optional[CouponResolver] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.db = db
        self.coupon_resolver = coupon_resolver or get_coupon_resolver()
        self.settings = settings or app_settings
        self.clock = clock

    async def find_cart(self, user_id: uuid.UUID) -> Optional[Cart]:
        result = await self.db.execute(select(Cart).where(Cart.user_id == user_id))
        return result.scalar_one_or_none()

    async def count_items(self, user_id: uuid.UUID) -> int:
        """Summed quantity of every stored line, 0 when no cart exists yet"""
        cart = await self.find_cart(user_id)
        if cart is None:
            return 0
        return sum(item.quantity for item in cart.items)

    async def get_cart(self, user_id: uuid.UUID) -> Cart:
        """Find the user's cart, creating it on first access"""
        cart = await self.find_cart(user_id)
        if cart:
            return cart

        cart = Cart(user_id=user_id, coupon_code=None, coupon_discount=Decimal("0"), items=[])
        self.db.add(cart)
        try:
            await self.db.commit()
        except IntegrityError:
            # Another request created it first
            await self.db.rollback()
            cart = await self.find_cart(user_id)
            if cart is None:
                raise
        return cart

    async def get_product(self, product_id: uuid.UUID) -> Optional[Product]:
        """Fresh read of a product, bypassing any stale identity-map copy"""
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def load_products(self, product_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, Product]:
        ids = list(set(product_ids))
        if not ids:
            return {}
        result = await self.db.execute(
            select(Product)
            .where(Product.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        return {product.id: product for product in result.scalars().all()}

    async def get_lines(self, cart: Cart) -> List[CartLine]:
        now = self.clock()
        products = await self.load_products(item.product_id for item in cart.items)
        lines = []
        for item in cart.items:
            product = products.get(item.product_id)
            current_price = resolve_product_price(product, now) if product else None
            lines.append(CartLine(item=item, product=product, current_price=current_price))
        return lines

    async def get_totals(self, cart: Cart) -> CartTotals:
        return summarize_cart(await self.get_lines(cart), cart.coupon_discount, self.settings)

    async def get_cart_view(self, user_id: uuid.UUID) -> dict:
        """
        Cart with per-line product details and derived totals

        Lines for missing or inactive products are hidden but stay stored.
        """
        cart = await self.get_cart(user_id)
        lines = await self.get_lines(cart)
        totals = summarize_cart(lines, cart.coupon_discount, self.settings)

        items = []
        for line in lines:
            if not line.is_valid:
                continue
            product = line.product
            items.append({
                "id": line.item.id,
                "product": {
                    "id": product.id,
                    "name": product.name,
                    "sku": product.sku,
                    "price": product.price,
                    "discount_percentage": product.discount_percentage,
                    "stock": product.stock,
                    "image": product.image,
                    "in_stock": product.is_in_stock,
                },
                "quantity": line.quantity,
                "price_at_add": line.price_at_add,
                "current_price": line.current_price,
                "subtotal": round_currency(line.price_at_add * line.quantity),
            })

        return {
            "id": cart.id,
            "items": items,
            "total_items": totals.total_items,
            "subtotal": totals.subtotal,
            "coupon_code": cart.coupon_code,
            "coupon_discount": totals.coupon_discount,
            "delivery_fee": totals.delivery_fee,
            "amount_to_free_delivery": totals.amount_to_free_delivery,
            "estimated_total": totals.estimated_total,
        }

    def add_or_merge(self, cart: Cart, product: Product, quantity: int, now: datetime) -> CartItem:
        """
        Put quantity of product in the cart at its current price, merging
        with an existing line and capping the merged quantity at live stock.
        """
        price = resolve_product_price(product, now)
        existing = cart.find_item(product.id)
        if existing:
            existing.quantity = min(existing.quantity + quantity, product.stock)
            existing.price_at_add = price
            return existing

        item = CartItem(product_id=product.id, quantity=quantity, price_at_add=price)
        cart.items.append(item)
        return item

    async def add_item(self, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int) -> Cart:
        """
        Add item to cart

        Raises:
            NotFoundException: If product not found
            ProductUnavailableException: If product inactive
            InsufficientStockException: If not enough stock for the merged quantity
        """
        if quantity < 1:
            raise ValidationException("Quantity must be at least 1")

        product = await self.get_product(product_id)
        if product is None:
            raise NotFoundException("Product not found")
        if not product.is_active:
            raise ProductUnavailableException(product.name, product.id)

        cart = await self.get_cart(user_id)
        existing = cart.find_item(product_id)
        existing_quantity = existing.quantity if existing else 0

        if product.stock < existing_quantity + quantity:
            raise InsufficientStockException(product.name, product.stock, product.id)

        price = resolve_product_price(product, self.clock())
        if existing:
            existing.quantity = existing_quantity + quantity
            existing.price_at_add = price
        else:
            cart.items.append(CartItem(product_id=product_id, quantity=quantity, price_at_add=price))

        await self.db.commit()
        logger.info(f"Cart {cart.id}: added {quantity} of {product_id}")
        return cart

    async def update_quantity(self, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int) -> Cart:
        """
        Set a line's quantity; zero or less removes the line

        Raises:
            NotFoundException: If the line or product does not exist
            InsufficientStockException: If not enough stock
        """
        cart = await self.get_cart(user_id)
        item = cart.find_item(product_id)
        if item is None:
            raise NotFoundException("Item not found in cart")

        if quantity <= 0:
            cart.items.remove(item)
            await self.db.commit()
            return cart

        product = await self.get_product(product_id)
        if product is None:
            raise NotFoundException("Product not found")

        if quantity > product.stock:
            raise InsufficientStockException(product.name, product.stock, product.id)

        item.quantity = quantity
        item.price_at_add = resolve_product_price(product, self.clock())

        await self.db.commit()
        return cart

    async def remove_item(self, user_id: uuid.UUID, product_id: uuid.UUID) -> Cart:
        cart = await self.get_cart(user_id)
        item = cart.find_item(product_id)
        if item is None:
            raise NotFoundException("Item not found in cart")

        cart.items.remove(item)
        await self.db.commit()
        return cart

    @staticmethod
    def clear_cart(cart: Cart) -> None:
        """Empty items and coupon; the caller commits"""
        cart.clear()

    async def clear(self, user_id: uuid.UUID) -> Cart:
        cart = await self.get_cart(user_id)
        self.clear_cart(cart)
        await self.db.commit()
        return cart

    async def apply_coupon(self, user_id: uuid.UUID, code: str) -> CouponQuote:
        """
        Apply coupon to cart

        Raises:
            EmptyCartException: Nothing to discount
            InvalidCouponException: Unknown code
            CouponMinimumNotMetException: Subtotal below the coupon floor
        """
        cart = await self.get_cart(user_id)
        if not cart.items:
            raise EmptyCartException()

        totals = await self.get_totals(cart)
        quote = self.coupon_resolver.resolve(code, totals.subtotal)

        cart.coupon_code = quote.code
        cart.coupon_discount = quote.discount_amount
        await self.db.commit()

        logger.info(f"Cart {cart.id}: coupon {quote.code} applied for {quote.discount_amount}")
        return quote

    async def remove_coupon(self, user_id: uuid.UUID) -> Cart:
        cart = await self.get_cart(user_id)
        cart.remove_coupon()
        await self.db.commit()
        return cart
