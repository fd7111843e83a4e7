# site_spider/storage/schema.py
"""SQLite DDL for the per-domain stores and the scan registry."""

SITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS pages (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  url TEXT UNIQUE NOT NULL,
  meta_title TEXT,
  meta_description TEXT,
  scanned_at TEXT NOT NULL,
  content_type TEXT NOT NULL DEFAULT 'HTML_PAGE'
    CHECK (content_type IN ('HTML_PAGE','NON_HTML_OR_ERROR','DISALLOWED','INTERNAL_ERROR')),
  response_status INTEGER,
  response_time INTEGER
);
CREATE INDEX IF NOT EXISTS idx_pages_response_status ON pages(response_status);
CREATE INDEX IF NOT EXISTS idx_pages_response_time ON pages(response_time);
CREATE INDEX IF NOT EXISTS idx_pages_meta_title ON pages(meta_title);
CREATE INDEX IF NOT EXISTS idx_pages_meta_description ON pages(meta_description);
CREATE INDEX IF NOT EXISTS idx_pages_content_type ON pages(content_type);

CREATE TABLE IF NOT EXISTS headers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  page_id INTEGER NOT NULL,
  level TEXT NOT NULL CHECK (level IN ('H1','H2','H3','H4','H5','H6')),
  text TEXT NOT NULL,
  FOREIGN KEY (page_id) REFERENCES pages(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_headers_page_id ON headers(page_id);

CREATE TABLE IF NOT EXISTS outgoing_links (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  page_id INTEGER NOT NULL,
  destination_url TEXT NOT NULL,
  FOREIGN KEY (page_id) REFERENCES pages(id) ON DELETE CASCADE,
  UNIQUE(page_id, destination_url)
);
CREATE INDEX IF NOT EXISTS idx_outgoing_links_page_id ON outgoing_links(page_id);
CREATE INDEX IF NOT EXISTS idx_outgoing_links_destination ON outgoing_links(destination_url);
"""

REGISTRY_SCHEMA = """
CREATE TABLE IF NOT EXISTS scan_registry (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  db_name TEXT UNIQUE NOT NULL,
  domain TEXT NOT NULL,
  start_url TEXT,
  status TEXT NOT NULL DEFAULT 'pending'
    CHECK (status IN ('pending','scanning','completed','error','cancelled')),
  scanned_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_scan_registry_scanned_at ON scan_registry(scanned_at);
"""
