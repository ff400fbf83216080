import json
import logging
import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import requests
from bs4 import BeautifulSoup

import config
from directory import ServiceRecord
from errors import DuplicateServiceName
from link_validator import extract_host, is_valid_onion_url, normalize_onion_url
from status_taxonomy import UNKNOWN, is_recognized

_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # fromisoformat() before 3.11 rejects a trailing "Z" and more than six
    # fractional digits (chrono writes nanoseconds)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    value = _FRACTION_PATTERN.sub(r"\1", value)
    return datetime.fromisoformat(value)


def record_from_dict(data: Dict) -> ServiceRecord:
    """Builds a record from one onions.json entry (snake_case keys)."""
    return ServiceRecord(
        title=data["title"],
        name=data["name"],
        onion_address=data["onion_address"],
        status=data.get("status", UNKNOWN),
        prev_status=data.get("prev_status", UNKNOWN),
        last_checked=_parse_timestamp(data.get("last_checked")),
        category=data.get("category"),
        description=data.get("description"),
        official_website=data.get("official_website"),
        github=data.get("github"),
        tags=tuple(data.get("tags") or ()),
    )


def record_to_dict(record: ServiceRecord) -> Dict:
    data = {
        "title": record.title,
        "name": record.name,
        "onion_address": record.onion_address,
        "status": record.status,
        "prev_status": record.prev_status,
        "last_checked": record.last_checked.isoformat() if record.last_checked else None,
    }
    for key in ("category", "description", "official_website", "github"):
        value = getattr(record, key)
        if value is not None:
            data[key] = value
    if record.tags:
        data["tags"] = list(record.tags)
    return data


def load_snapshot(path: str = config.SNAPSHOT_PATH) -> List[ServiceRecord]:
    """
    Loads a directory snapshot. A missing or malformed file is an error for
    the caller; no empty default is substituted.
    """
    with open(path, encoding="utf-8") as f:
        entries = json.load(f)

    records = []
    seen = set()
    for entry in entries:
        record = record_from_dict(entry)
        if record.name in seen:
            raise DuplicateServiceName(f"Duplicate service name in {path}: {record.name!r}")
        seen.add(record.name)
        if not is_recognized(record.status):
            logging.warning(f"[!] Unrecognized status {record.status!r} for {record.name}, shown as unknown")
        records.append(record)

    logging.info(f"[*] Loaded {len(records)} services from {path}")
    return records


def save_snapshot(path: str, records: Iterable[ServiceRecord]):
    with open(path, "w", encoding="utf-8") as f:
        json.dump([record_to_dict(r) for r in records], f, indent=2)


def merge_snapshots(discovered: Iterable[ServiceRecord], existing: Iterable[ServiceRecord]) -> List[ServiceRecord]:
    """
    Adds newly discovered services to an existing snapshot.

    Existing entries keep their status and history; discovered entries only
    fill in names the snapshot doesn't have yet. Sorted by title.
    """
    merged = {record.name: record for record in existing}
    for record in discovered:
        merged.setdefault(record.name, record)
    return sorted(merged.values(), key=lambda r: r.title)


def kebab_case(title: str) -> str:
    return title.lower().replace(" ", "-").replace("_", "-")


class SeedPopulator:
    def __init__(self, contents_url: str = config.GITHUB_CONTENTS_URL, token: Optional[str] = config.GITHUB_TOKEN):
        self.contents_url = contents_url
        self.session = requests.Session()
        self.session.headers.update(config.HEADERS)
        if token:
            logging.info("[*] Using GitHub token for authentication")
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _projects_to_records(self, projects: List[Dict]) -> List[ServiceRecord]:
        records = []
        for project in projects:
            onion_address = normalize_onion_url(project.get("onion"))
            # Skip WIP/placeholder entries
            if onion_address is None:
                continue
            title = project.get("name", "")
            records.append(ServiceRecord(title=title, name=kebab_case(title), onion_address=onion_address))
        return records

    def fetch_github_projects(self) -> List[ServiceRecord]:
        """
        Reads every *.json project list in the GitHub contents directory and
        returns an unchecked record for each project with an onion address.
        """
        logging.info("[*] Fetching latest onion addresses from GitHub...")
        try:
            response = self.session.get(self.contents_url, timeout=config.REQUEST_TIMEOUT)
            response.raise_for_status()
            files = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logging.error(f"[!] Failed to fetch directory listing: {e}")
            return []

        if not isinstance(files, list):
            logging.error(f"[!] Unexpected directory listing from {self.contents_url}")
            return []

        json_files = [f for f in files if f.get("type") == "file" and f.get("name", "").endswith(".json")]
        logging.info(f"[*] Found {len(json_files)} JSON files in directory")

        records = []
        for file in json_files:
            download_url = file.get("download_url")
            if not download_url:
                continue
            try:
                response = self.session.get(download_url, timeout=config.REQUEST_TIMEOUT)
                response.raise_for_status()
                projects = response.json()
            except (requests.exceptions.RequestException, ValueError) as e:
                logging.warning(f"[!] Failed to fetch {file['name']}: {e}")
                continue
            if isinstance(projects, list):
                records.extend(self._projects_to_records(projects))

        logging.info(f"[+] Found {len(records)} onion addresses from GitHub")
        return records

    def fetch_records_from_page(self, page_url: str) -> List[ServiceRecord]:
        """
        Scrapes an HTML directory page for v3 onion links and returns an
        unchecked record per address, titled by the link text.
        """
        logging.info(f"[*] Seeding from: {page_url}")
        try:
            response = self.session.get(page_url, timeout=config.REQUEST_TIMEOUT)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logging.error(f"[!] Failed to fetch seeds from {page_url}: {e}")
            return []

        soup = BeautifulSoup(response.text, 'html.parser')
        records = []
        seen_hosts = set()
        seen_names = set()
        for anchor in soup.find_all('a', href=True):
            onion_url = normalize_onion_url(anchor['href'])
            if onion_url is None or not is_valid_onion_url(onion_url):
                continue
            host = extract_host(onion_url)
            if host in seen_hosts:
                continue
            seen_hosts.add(host)

            title = anchor.get_text(strip=True) or host
            name = kebab_case(title)
            # Two links sharing a caption still need distinct names
            if name in seen_names:
                name = f"{name}-{host[:8]}"
            seen_names.add(name)
            records.append(ServiceRecord(title=title, name=name, onion_address=f"http://{host}"))

        logging.info(f"[+] Found {len(records)} onion addresses on {page_url}")
        return records


if __name__ == "__main__":
    import os

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(message)s')

    populator = SeedPopulator()
    discovered = populator.fetch_github_projects()
    for page_url in config.SEED_PAGES:
        discovered.extend(populator.fetch_records_from_page(page_url))

    existing = load_snapshot(config.SNAPSHOT_PATH) if os.path.exists(config.SNAPSHOT_PATH) else []
    merged = merge_snapshots(discovered, existing)
    save_snapshot(config.SNAPSHOT_PATH, merged)
    logging.info(f"[+] Updated {config.SNAPSHOT_PATH} with {len(merged)} sites")
