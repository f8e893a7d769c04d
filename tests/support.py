from sqlalchemy import event

from pocketbook_sync.clients.pocketbook_db import PocketBookDB
from pocketbook_sync.config import Settings

SCHEMA = [
    "CREATE TABLE folders (id INTEGER PRIMARY KEY, name TEXT)",
    "CREATE TABLE files (id INTEGER PRIMARY KEY, folder_id INTEGER, filename TEXT, book_id INTEGER)",
    "CREATE TABLE profiles (id INTEGER PRIMARY KEY, name TEXT)",
    "CREATE TABLE books_settings (bookid INTEGER, profileid INTEGER, cpage INTEGER, npage INTEGER, "
    "completed INTEGER, opentime INTEGER, PRIMARY KEY (bookid, profileid))",
    "CREATE TABLE bookshelfs (id INTEGER PRIMARY KEY, name TEXT, is_deleted INTEGER DEFAULT 0)",
    "CREATE TABLE bookshelfs_books (bookid INTEGER, bookshelfid INTEGER)",
]

SEED = [
    "INSERT INTO folders (id, name) VALUES (3, '/mnt/ext1/Books')",
    "INSERT INTO files (folder_id, filename, book_id) VALUES (3, 'novel.epub', 42)",
    "INSERT INTO profiles (id, name) VALUES (1, 'default'), (5, 'Alice')",
    "INSERT INTO bookshelfs (id, name, is_deleted) VALUES (7, 'To Read', 0), (8, 'Old', 1)",
]

BOOK_PATH = "/mnt/ext1/Books/novel.epub"

def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, PERSIST_ENABLED=False, **overrides)

def make_db(seed: bool = True, path: str = ":memory:", busy_timeout_ms: int = 2000) -> PocketBookDB:
    db = PocketBookDB(path, busy_timeout_ms)
    run_sql(db, SCHEMA + (SEED if seed else []))
    return db

def run_sql(db: PocketBookDB, statements):
    with db.conn.begin():
        for sql in statements:
            db.conn.exec_driver_sql(sql)

def query(db: PocketBookDB, sql: str):
    with db.conn.begin():
        return db.conn.exec_driver_sql(sql).fetchall()

class StatementLog:
    """Records every statement the driver executes against a PocketBookDB."""

    def __init__(self, db: PocketBookDB):
        self.statements = []
        event.listen(db.engine, "before_cursor_execute", self._record)

    def _record(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)

    def count(self, fragment: str) -> int:
        return sum(1 for s in self.statements if fragment in s)

    def clear(self):
        self.statements.clear()

class FakeDocument:
    def __init__(self, file=BOOK_PATH, page=10, total_pages=100, flow=0):
        self.file = file
        self.current_page = page
        self.total_pages = total_pages
        self.flow = flow
        self.flow_queries = 0

    def get_page_flow(self, page):
        self.flow_queries += 1
        return self.flow

    def get_total_pages_in_flow(self, flow):
        return self.total_pages

    def get_page_number_in_flow(self, page):
        return page

class FakeSettings:
    def __init__(self, **data):
        self.data = dict(data)
        self.flushes = 0

    def read_setting(self, key, default=None):
        return self.data.get(key, default)

    def save_setting(self, key, value):
        self.data[key] = value

    def del_setting(self, key):
        self.data.pop(key, None)

    def flush(self):
        self.flushes += 1

class FakeCollections:
    def __init__(self, **collections):
        self.collections = {name: set(paths) for name, paths in collections.items()}
        self.saves = 0

    def names(self):
        return list(self.collections)

    def contains(self, name, path):
        return path in self.collections.get(name, ())

    def remove(self, name, path):
        self.collections[name].discard(path)
        return True

    def save(self):
        self.saves += 1

class FakeDevice:
    def __init__(self, profile=None, snapshot_error=None, profile_error=None):
        self.profile = profile
        self.profile_error = profile_error
        self.snapshot_error = snapshot_error
        self.profile_queries = 0
        self.snapshots = 0

    def current_profile_name(self):
        self.profile_queries += 1
        if self.profile_error:
            raise self.profile_error
        return self.profile

    def page_snapshot(self):
        self.snapshots += 1
        if self.snapshot_error:
            raise self.snapshot_error

class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
