import getpass
import sys

from app.core.security import get_password_hash

def main():
    password = sys.argv[1] if len(sys.argv) > 1 else getpass.getpass("Admin password: ")
    if not password:
        print("Password must not be empty")
        sys.exit(1)

    hashed = get_password_hash(password)
    print(f"Hashed password: {hashed}")
    print("\nAdd this to your .env file:")
    print(f"ADMIN_PASSWORD_HASH={hashed}")

if __name__ == "__main__":
    main()
