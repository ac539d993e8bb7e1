from fastapi import Request


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Checks the following headers in order:
    1. X-Forwarded-For (for proxy/load balancer scenarios)
    2. X-Real-IP
    3. CF-Connecting-IP (Cloudflare)
    4. Direct client IP from request

    Args:
        request: The FastAPI request object.

    Returns:
        The client IP address as a string.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()

    return request.client.host if request.client else "unknown"
