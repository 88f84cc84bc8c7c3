import os
from dotenv import load_dotenv

load_dotenv()

verify_user_url = os.getenv("VERIFY_USER_URL", "http://localhost:3000/api/verify-user")
use_prediction_url = os.getenv("USE_PREDICTION_URL", "http://localhost:3000/api/use-prediction")
affiliate_link_url = os.getenv("AFFILIATE_LINK_URL", "http://localhost:3000/api/affiliate-link")
redis_host = os.getenv("REDIS_HOST", "redis")
redis_port = int(os.getenv("REDIS_PORT", "6379"))
api_timeout = float(os.getenv("API_TIMEOUT", "10"))
session_idle_hours = float(os.getenv("SESSION_IDLE_HOURS", "24"))


def get_admin_password() -> str | None:
    """Admin password is looked up on every call so a missing value is reported, not cached."""
    return os.getenv("ADMIN_PASSWORD") or None


if __name__ == "__main__":
    print(verify_user_url, use_prediction_url, affiliate_link_url, redis_host, redis_port)
