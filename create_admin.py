import sys
import psycopg2
from portal_api.core.security import hash_password
from portal_api.core.config import settings
from urllib.parse import urlparse

def create_admin_user(email: str, password: str, display_name: str | None = None) -> bool:
    """Create an operator login. Tables must exist (the API creates them on startup)."""
    email = email.strip().lower()
    db_url = urlparse(settings.DATABASE_URL.replace("postgresql+asyncpg://", "postgresql://"))
    try:
        conn = psycopg2.connect(
            host=db_url.hostname or "localhost",
            port=db_url.port or 5432,
            user=db_url.username or "postgres",
            password=db_url.password or "postgres",
            database=db_url.path.lstrip("/") or "postgres"
        )
    except psycopg2.Error as e:
        print(f"Error connecting to database: {e}")
        return False

    try:
        with conn, conn.cursor() as cursor:
            cursor.execute("SELECT id FROM users WHERE lower(email) = %s", (email,))
            if cursor.fetchone():
                print(f"Error: a login for '{email}' already exists")
                return False

            cursor.execute(
                "INSERT INTO users (email, password_hash, role, display_name, created_at) "
                "VALUES (%s, %s, %s, %s, now()) RETURNING id",
                (email, hash_password(password), "ADMIN", display_name)
            )
            user_id = cursor.fetchone()[0]
    except psycopg2.Error as e:
        print(f"Error creating operator: {e}")
        return False
    finally:
        conn.close()

    print(f"Operator '{email}' created successfully")
    print(f"User ID: {user_id}")
    print("Role: admin")
    return True


def main():
    if len(sys.argv) < 3:
        print("Usage: python create_admin.py <email> <password> [display name]")
        sys.exit(1)
    
    email = sys.argv[1]
    password = sys.argv[2]
    display_name = " ".join(sys.argv[3:]) or None
    
    if not email or not password:
        print("Error: email and password cannot be empty")
        sys.exit(1)
    if len(password) < 8:
        print("Error: password must be at least 8 characters")
        sys.exit(1)
    
    success = create_admin_user(email, password, display_name)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
