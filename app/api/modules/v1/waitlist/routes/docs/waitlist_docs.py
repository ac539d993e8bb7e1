_SAMPLE_USER = {
    "id": "0b8f4d1e-6f7a-4c55-9d8e-3f1a2b3c4d5e",
    "email": "ada@example.com",
    "invite_code": "K7Q2M9XA",
    "referred_by_code": None,
    "referral_count": 0,
    "position": 42,
    "created_at": "2025-01-15T10:30:00+00:00",
    "updated_at": "2025-01-15T10:30:00+00:00",
}

_INTERNAL_ERROR = {
    "description": "Internal Server Error",
    "content": {
        "application/json": {
            "example": {
                "success": False,
                "error": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "errors": {},
            }
        }
    },
}

join_waitlist_responses = {
    200: {
        "description": "Email already on the waitlist",
        "content": {
            "application/json": {
                "example": {
                    "success": True,
                    "status_code": 200,
                    "message": "Email already registered",
                    "user": _SAMPLE_USER,
                    "totalUsers": 128,
                    "redirectUrl": "/success?email=ada%40example.com",
                }
            }
        },
    },
    201: {
        "description": "Joined the waitlist",
        "content": {
            "application/json": {
                "example": {
                    "success": True,
                    "status_code": 201,
                    "message": "Successfully joined the waitlist!",
                    "user": _SAMPLE_USER,
                    "totalUsers": 128,
                    "redirectUrl": "/success?email=ada%40example.com",
                }
            }
        },
    },
    400: {
        "description": "Bad Request - Email rejected",
        "content": {
            "application/json": {
                "examples": {
                    "missing_email": {
                        "summary": "Missing Email",
                        "value": {
                            "success": False,
                            "error": "ERROR",
                            "message": "Email is required",
                            "status_code": 400,
                            "errors": {},
                        },
                    },
                    "invalid_format": {
                        "summary": "Malformed Address",
                        "value": {
                            "success": False,
                            "error": "ERROR",
                            "message": "Invalid email format. Please enter a valid email address.",
                            "status_code": 400,
                            "errors": {},
                        },
                    },
                    "disposable": {
                        "summary": "Disposable Domain",
                        "value": {
                            "success": False,
                            "error": "ERROR",
                            "message": (
                                "Temporary or disposable email addresses are not allowed. "
                                "Please use a permanent email address."
                            ),
                            "status_code": 400,
                            "errors": {},
                        },
                    },
                    "typo": {
                        "summary": "Domain Typo",
                        "value": {
                            "success": False,
                            "error": "ERROR",
                            "message": "Did you mean ada@gmail.com?",
                            "status_code": 400,
                            "errors": {},
                        },
                    },
                }
            }
        },
    },
    429: {
        "description": "Too Many Requests - Signup attempts exhausted for this IP",
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "error": "RATE_LIMIT_EXCEEDED",
                    "message": "Too many signup attempts. Please try again after 11:30:00 UTC.",
                    "status_code": 429,
                    "errors": {},
                    "retryAfter": 1800,
                    "resetTime": "2025-01-15T11:30:00+00:00",
                }
            }
        },
    },
    500: _INTERNAL_ERROR,
}

user_status_responses = {
    200: {
        "description": "Entrant found",
        "content": {
            "application/json": {
                "example": {"success": True, "status_code": 200, "user": _SAMPLE_USER}
            }
        },
    },
    400: {
        "description": "Neither email nor invite code supplied",
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "error": "ERROR",
                    "message": "Email or invite code required",
                    "status_code": 400,
                    "errors": {},
                }
            }
        },
    },
    404: {
        "description": "No entrant matches",
        "content": {
            "application/json": {
                "example": {
                    "success": False,
                    "error": "ERROR",
                    "message": "User not found",
                    "status_code": 404,
                    "errors": {},
                }
            }
        },
    },
    500: _INTERNAL_ERROR,
}

leaderboard_responses = {
    200: {
        "description": "Earliest entrants",
        "content": {
            "application/json": {
                "example": {
                    "success": True,
                    "status_code": 200,
                    "totalUsers": 128,
                    "recentUsers": [_SAMPLE_USER],
                }
            }
        },
    },
    500: _INTERNAL_ERROR,
}

check_auth_responses = {
    200: {
        "description": "Session check result",
        "content": {
            "application/json": {
                "examples": {
                    "authenticated": {
                        "summary": "Valid Session",
                        "value": {"authenticated": True, "user": _SAMPLE_USER},
                    },
                    "no_cookie": {
                        "summary": "No Session Cookie",
                        "value": {
                            "authenticated": False,
                            "message": "No authentication token found",
                        },
                    },
                    "invalid": {
                        "summary": "Invalid Or Expired Token",
                        "value": {"authenticated": False, "message": "Invalid or expired token"},
                    },
                }
            }
        },
    },
    500: {
        "description": "Session check failed",
        "content": {
            "application/json": {
                "example": {"authenticated": False, "message": "Internal server error"}
            }
        },
    },
}

user_data_responses = {
    200: {
        "description": "Entrant with leaderboard",
        "content": {
            "application/json": {
                "example": {
                    "success": True,
                    "status_code": 200,
                    "user": _SAMPLE_USER,
                    "leaderboard": [_SAMPLE_USER],
                    "totalUsers": 128,
                }
            }
        },
    },
    400: user_status_responses[400],
    404: user_status_responses[404],
    500: _INTERNAL_ERROR,
}

rate_limit_stats_responses = {
    200: {
        "description": "Signup rate limiter statistics",
        "content": {
            "application/json": {
                "example": {
                    "success": True,
                    "status_code": 200,
                    "stats": {
                        "total_tracked_ips": 3,
                        "config": {
                            "max_attempts": 5,
                            "window_seconds": 3600,
                            "block_duration_seconds": 3600,
                            "backend": "memory",
                        },
                    },
                    "timestamp": "2025-01-15T10:30:00+00:00",
                }
            }
        },
    },
    500: _INTERNAL_ERROR,
}

provider_status_responses = {
    200: {
        "description": "Deliverability provider account status",
        "content": {
            "application/json": {
                "example": {
                    "success": True,
                    "status_code": 200,
                    "data": {
                        "credits": 950,
                        "usage": {"total": 50},
                        "hasApiKey": True,
                        "environment": "production",
                    },
                }
            }
        },
    },
    500: _INTERNAL_ERROR,
}

_FORBIDDEN = {
    "description": "Forbidden - Missing or wrong X-Admin-Key",
    "content": {
        "application/json": {
            "example": {
                "success": False,
                "error": "HTTP_ERROR",
                "message": "Invalid admin key",
                "status_code": 403,
                "errors": {},
            }
        }
    },
}

clear_rate_limit_responses = {
    200: {
        "description": "Attempt record for one IP removed",
        "content": {
            "application/json": {
                "example": {
                    "success": True,
                    "status_code": 200,
                    "message": "Rate limit cleared",
                    "ip": "198.51.100.7",
                    "cleared": True,
                }
            }
        },
    },
    403: _FORBIDDEN,
    500: _INTERNAL_ERROR,
}

clear_all_rate_limits_responses = {
    200: {
        "description": "All attempt records removed",
        "content": {
            "application/json": {
                "example": {
                    "success": True,
                    "status_code": 200,
                    "message": "All rate limits cleared",
                }
            }
        },
    },
    403: _FORBIDDEN,
    500: _INTERNAL_ERROR,
}
