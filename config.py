"""
Shared configuration constants for the Onion Directory project.
"""

import os

SNAPSHOT_PATH = "onions.json"
NGINX_RECIPE_PATH = os.path.join("docs", "nginx-onion-location.conf")

# Directory of per-project JSON files listing ecosystem onion services
GITHUB_CONTENTS_URL = "https://api.github.com/repos/igor53627/tor-ethereum-ecosystem/contents/src/data"
GITHUB_TOKEN = os.environ.get("GITHUB_TOKEN")

REQUEST_TIMEOUT = 30

HEADERS = {
    'User-Agent': 'onion-monitoring-tool'
}

# Optional HTML directory pages to scrape for more onion links (comma-separated)
SEED_PAGES = [url.strip() for url in os.environ.get("ONION_SEED_PAGES", "").split(",") if url.strip()]
