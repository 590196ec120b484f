"""CoinMatrix market data backend."""
