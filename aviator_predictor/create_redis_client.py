from redis.asyncio import Redis

from aviator_predictor.load_secrets import redis_host, redis_port


def create_redis_client() -> Redis:
    return Redis(
        host=redis_host, port=redis_port, decode_responses=True, health_check_interval=30
    )
