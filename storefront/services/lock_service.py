import redis
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nie mozna wcisnac sie miedzy GET a DEL
#wiec lock zdejmuje tylko ten kto go zalozyl


class LockService:
    """
    -lock na referencje platnosci (dwa rownolegle webhooki tej samej platnosci)
    -zwalnianie locka
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None, client=None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _payment_key(payment_reference: str) -> str:
        return f"payment:{payment_reference}:lock"

    @redis_retry()
    def acquire_payment_lock(self, payment_reference: str, owner: str, ttl: int) -> bool:
        key = self._payment_key(payment_reference)
        logger.info(f"Acquire lock {key} for {owner}")
        #SET payment:pi_123:lock "<owner>" NX EX 60
        return bool(self.redis.set(
            name=key,
            value=owner,
            nx=True, #tylko jesli klucz nie istnieje
            ex=ttl, #wygasa sam gdy proces padnie w srodku
        ))

    @redis_retry()
    def release_payment_lock(self, payment_reference: str, owner: str) -> bool:
        key = self._payment_key(payment_reference)
        logger.info(f"Release lock {key} for {owner}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, owner)
        return bool(res)
