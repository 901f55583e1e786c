#!/usr/bin/env python3

"""
Session Setup - log in by hand once, save cookies for unattended runs
"""

import logging
import sys

from dotenv import load_dotenv

from .browser import BrowserSession
from .config_loader import load_config
from .session_manager import SessionManager


def setup_session(config_path: str = "config/settings.yaml") -> int:
    """Open a headed browser at the login page for manual login / OTP / captcha"""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    config = load_config(config_path)
    config.set('browser.headless', False)

    print("\n" + "="*60)
    print("🔐 NAUKRI SESSION SETUP")
    print("="*60)
    print("\nThis will open a browser window.")
    print("1. Log in to Naukri (solve any captcha / OTP prompt)")
    print("2. Wait for your Naukri home page to load")
    print("3. Press Enter here when done")
    print(f"\nCookies will be saved to: {config.get_cookie_file()}")
    print("\n" + "="*60 + "\n")

    session = BrowserSession(config)
    session.start()
    try:
        manager = SessionManager(session, config)
        print("🌐 Opening Naukri login page...")
        session.navigate(config.get_login_url())

        input("\n✋ Log in, wait for the home page, then press Enter...")

        if not manager.is_authenticated():
            print("\n⚠️  Still not logged in. Nothing saved.")
            print("   - Make sure the Naukri home page is showing")
            print("   - Try again")
            return 1

        if not manager.save_session():
            print("\n❌ Could not write the cookie file.")
            return 1
        print(f"\n✅ Session saved to {config.get_cookie_file()}")
        print("\n   You can now run naukri-scraper!")
        return 0
    finally:
        session.stop()


if __name__ == "__main__":
    sys.exit(setup_session(*sys.argv[1:2]))
