import secrets


def generate_secret_key(length: int = 32) -> str:
    """Generate a random hex key for signing access tokens."""
    return secrets.token_hex(length)


if __name__ == "__main__":
    key = generate_secret_key()
    print("Add this line to your .env file:\n")
    print(f"SECRET_KEY={key}")
