"""Cache TTL and key prefix constants."""

# Cache TTL constants (in seconds)
TTL_RELATIONSHIP_SESSION = 600  # 10 minutes - creator, A, B, result, lock
TTL_POSTER = 7 * 24 * 3600  # 7 days - shared poster images
TTL_DAILY_CARD = 24 * 3600  # 24 hours - one card per user per day

# Cache key prefixes - segments are joined with ":" under the default namespace
KEY_PREFIX_RELATIONSHIP = "relationship:session"  # relationship:session:{id}:{slot}
KEY_PREFIX_POSTER = "poster"  # poster:{id}
KEY_PREFIX_DAILY_CARD = "daily_card"  # daily_card:{user}:{yyyy-mm-dd}
KEY_PREFIX_RATE = "rate"  # rate:{scope}:{identifier}:{window}

# Rendezvous key suffixes
SLOT_CREATOR = "creator"
SLOT_A = "A"
SLOT_B = "B"
SLOT_RESULT = "result"
SLOT_LOCK = "lock"
