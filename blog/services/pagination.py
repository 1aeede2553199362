from blog.serializers import pagination_meta


def paginate(query, page: int, limit: int, order_by=()):
    """
    Offset pagination with a separate count query.
    Rows inserted or deleted between the two queries can make a page skip or repeat entries.
    """
    total = query.order_by(None).count()
    items = query.order_by(*order_by).offset((page - 1) * limit).limit(limit).all()
    return items, pagination_meta(total, page, limit)
