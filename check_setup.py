import os
import sys

from dotenv import load_dotenv


def check_setup():
    print("🔍 Starting SecuryFlex Setup Check...\n")

    # 1. Python version
    print(f"🐍 Python Version: {sys.version.split()[0]} - {'OK' if sys.version_info >= (3, 10) else 'WARNING: Python 3.10+ required'}")

    # 2. Dependencies
    dependencies = [
        ('yaml', 'pyyaml'),
        ('dotenv', 'python-dotenv'),
        ('requests', 'requests'),
        ('html2text', 'html2text'),
        ('pandas', 'pandas'),
        ('streamlit', 'streamlit'),
    ]

    print("\n📦 Checking Dependencies:")
    missing_deps = []
    for module, package in dependencies:
        try:
            __import__(module)
            print(f"  ✅ {package} is installed")
        except ImportError:
            print(f"  ❌ {package} is MISSING")
            missing_deps.append(package)

    if missing_deps:
        print(f"\n👉 Please run: pip install {' '.join(missing_deps)}")

    # 3. .env file
    print("\n📄 Checking .env file:")
    if os.path.exists('.env'):
        print("  ✅ .env file found")
        load_dotenv()
    else:
        print("  ℹ️ .env file not found (defaults will be used)")

    sources = [s.strip().lower() for s in os.getenv("JOB_SOURCES", "static").split(",") if s.strip()]
    if "feed" in sources and not os.getenv("JOB_FEED_URL"):
        print("  ❌ JOB_SOURCES includes 'feed' but JOB_FEED_URL is MISSING")
    else:
        print(f"  ✅ Job sources: {', '.join(sources) or 'static'}")

    if os.getenv("PAYMENT_API_URL"):
        status = "set" if os.getenv("PAYMENT_API_KEY") else "MISSING"
        print(f"  {'✅' if status == 'set' else '❌'} PAYMENT_API_KEY is {status}")
    else:
        print("  ℹ️ PAYMENT_API_URL not set (payments are recorded locally as pending)")

    # 4. Settings and storage
    print("\n⚙️ Checking Settings and Storage:")
    from config import CONFIG_FILE
    if os.path.exists(CONFIG_FILE):
        print(f"  ✅ {CONFIG_FILE} found")
    else:
        print(f"  ℹ️ {CONFIG_FILE} missing (created with defaults on first run)")

    db_path = os.getenv("SECURYFLEX_DB_PATH", os.path.join("local_data", "securyflex.db"))
    if os.path.exists(db_path):
        print(f"  ✅ Database found: {db_path}")
    else:
        print(f"  ℹ️ Database not found: {db_path} (created on first run)")

    print("\n✨ Setup check complete!")


if __name__ == "__main__":
    check_setup()
