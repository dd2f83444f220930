import math


def pagination_out(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "hasNext": page * limit < total,
        "hasPrev": page > 1,
    }
