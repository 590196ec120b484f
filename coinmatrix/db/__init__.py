from .base import Base
from .models.user import User  # Registers users table
from .models.cache import CacheEntry  # Registers api_cache table
from .models.bookmark import Bookmark
from .models.sentiment import CoinSentiment
