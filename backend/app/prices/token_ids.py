"""Static token tables: mint → CoinGecko id, and simulator seeds."""

# Native SOL is not an SPL token; this is the wrapped SOL mint used as its key
SOL_MINT = "So11111111111111111111111111111111111111112"

# Wallet-native identifier (SPL mint address) → CoinGecko coin id.
# Read-only at runtime; mints not listed here are left out of batch results.
TOKEN_ID_MAP: dict[str, str] = {
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "usd-coin",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "tether",
    "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU": "cope",
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": "bonk",
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": "marinade-staked-sol",
    SOL_MINT: "solana",
}

# Starting prices for the simulator, keyed by CoinGecko id
SEED_PRICES: dict[str, float] = {
    "solana": 140.00,
    "usd-coin": 1.00,
    "tether": 1.00,
    "cope": 0.02,
    "bonk": 0.00002,
    "marinade-staked-sol": 165.00,
}

SYMBOLS: dict[str, str] = {
    "solana": "SOL",
    "usd-coin": "USDC",
    "tether": "USDT",
    "cope": "COPE",
    "bonk": "BONK",
    "marinade-staked-sol": "MSOL",
}

# Per-asset GBM parameters (annualized)
# sigma: volatility, mu: drift
ASSET_PARAMS: dict[str, dict[str, float]] = {
    "solana": {"sigma": 0.80, "mu": 0.05},
    "usd-coin": {"sigma": 0.005, "mu": 0.0},  # Stablecoin
    "tether": {"sigma": 0.005, "mu": 0.0},  # Stablecoin
    "cope": {"sigma": 1.50, "mu": 0.0},
    "bonk": {"sigma": 1.80, "mu": 0.0},
    "marinade-staked-sol": {"sigma": 0.80, "mu": 0.07},
}

# Parameters for assets not listed above
DEFAULT_PARAMS: dict[str, float] = {"sigma": 1.00, "mu": 0.0}
