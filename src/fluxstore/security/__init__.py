"""Security — per-owner field encryption and crypto-shredding."""
