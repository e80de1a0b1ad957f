"""
Response Shaping

Turns ORM objects into the JSON dictionaries returned by the API.
Keys are camelCase because that is the contract the storefront and admin
frontends consume. Money columns are Numeric in the database and are
returned as floats.

Every function here expects the relationships it reads to be eagerly
loaded (selectinload); async sessions cannot lazy-load.
"""


def money(value) -> float | None:
    return float(value) if value is not None else None


def iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def variant_to_dict(variant) -> dict:
    return {
        "id": variant.id,
        "productId": variant.product_id,
        "name": variant.name,
        "price": money(variant.price),
        "salePrice": money(variant.sale_price),
        "weight": variant.weight,
        "stock": variant.stock,
        "inStock": variant.in_stock,
        "position": variant.position,
    }


def image_to_dict(image) -> dict:
    return {
        "id": image.id,
        "url": image.url,
        "alt": image.alt,
        "position": image.position,
    }


def category_to_dict(category, product_count: int | None = None) -> dict:
    result = {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "image": category.image,
        "parentId": category.parent_id,
        "createdAt": iso(category.created_at),
    }
    if product_count is not None:
        result["productCount"] = product_count
    return result


def product_to_dict(product, variants=None, images=None, with_attributes: bool = False) -> dict:
    """
    Serialize a product with its category, variants and images.

    Args:
        product: Product with category, variants and images loaded
        variants: Override for the variant list (listings show only the cheapest)
        images: Override for the image list (listings show only the first)
        with_attributes: Include product attributes (detail views)
    """
    variants = product.variants if variants is None else variants
    images = product.images if images is None else images
    result = {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "categoryId": product.category_id,
        "category": category_to_dict(product.category) if product.category else None,
        "status": product.status,
        "type": product.type,
        "featured": product.featured,
        "position": product.position,
        "createdAt": iso(product.created_at),
        "variants": [variant_to_dict(v) for v in variants],
        "images": [image_to_dict(i) for i in images],
    }
    if with_attributes:
        result["attributes"] = [{"name": a.name, "value": a.value} for a in product.attributes]
    return result


def product_summary(product) -> dict:
    """
    Listing shape: first image and cheapest variant only.
    """
    cheapest = sorted(product.variants, key=lambda v: v.price)[:1]
    return product_to_dict(product, variants=cheapest, images=product.images[:1])


def discount_to_dict(discount) -> dict:
    return {
        "id": discount.id,
        "code": discount.code,
        "type": discount.type,
        "value": money(discount.value),
        "minPurchase": money(discount.min_purchase),
        "maxUses": discount.max_uses,
        "usedCount": discount.used_count,
        "startDate": iso(discount.start_date),
        "endDate": iso(discount.end_date),
        "active": discount.active,
        "createdAt": iso(discount.created_at),
    }


def user_to_dict(user, order_count: int | None = None) -> dict:
    """
    Admin view of a user. The password hash is never included.
    """
    result = {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "phone": user.phone,
        "role": user.role,
        "hasPassword": bool(user.password_hash),
        "createdAt": iso(user.created_at),
        "updatedAt": iso(user.updated_at),
    }
    if order_count is not None:
        result["orderCount"] = order_count
    return result


def customer_profile(user) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "phone": user.phone,
    }


def address_to_dict(address) -> dict | None:
    if address is None:
        return None
    return {
        "id": address.id,
        "firstName": address.first_name,
        "lastName": address.last_name,
        "street": address.street,
        "city": address.city,
        "state": address.state,
        "postalCode": address.postal_code,
        "phone": address.phone,
    }


def order_summary(order) -> dict:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "status": order.status,
        "paymentStatus": order.payment_status,
        "paymentMethod": order.payment_method,
        "subtotal": money(order.subtotal),
        "shippingCost": money(order.shipping_cost),
        "discount": money(order.discount),
        "total": money(order.total),
        "notes": order.notes,
        "createdAt": iso(order.created_at),
    }


def order_to_dict(order) -> dict:
    """
    Admin order detail: user, items with their variant/product, address.
    """
    result = order_summary(order)
    result["user"] = customer_profile(order.user) if order.user else None
    result["shippingAddress"] = address_to_dict(order.shipping_address)
    result["items"] = []
    for item in order.items:
        product = item.variant.product if item.variant else None
        result["items"].append({
            "id": item.id,
            "variantId": item.variant_id,
            "name": item.name,
            "price": money(item.price),
            "quantity": item.quantity,
            "total": money(item.total),
            "product": {"id": product.id, "name": product.name, "slug": product.slug} if product else None,
        })
    return result


def config_to_dict(config) -> dict:
    return {"id": config.id, "key": config.key, "value": config.value, "type": config.type}
