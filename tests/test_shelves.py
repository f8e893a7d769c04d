import unittest

from pocketbook_sync.shelves import COLLECTION_ID_KEY, COLLECTION_NAME_KEY, CollectionMaintainer

from support import BOOK_PATH, FakeCollections, FakeSettings, StatementLog, make_db, query, run_sql

class TestCollectionMaintainer(unittest.TestCase):
    def setUp(self):
        self.db = make_db()
        run_sql(self.db, ["INSERT INTO bookshelfs_books (bookid, bookshelfid) VALUES (42, 7), (43, 7)"])
        self.log = StatementLog(self.db)
        self.global_settings = FakeSettings()
        self.collections = FakeCollections(**{"To Read": [BOOK_PATH], "Favourites": [BOOK_PATH]})
        self.maintainer = CollectionMaintainer(self.db, self.global_settings, self.collections)

    def tearDown(self):
        self.db.close()

    def memberships(self):
        return query(self.db, "SELECT bookid, bookshelfid FROM bookshelfs_books ORDER BY bookid")

    def test_nothing_configured(self):
        self.maintainer.on_book_completed(42, BOOK_PATH)
        self.assertEqual(self.log.statements, [])
        self.assertEqual(self.collections.saves, 0)

    def test_removes_only_this_book(self):
        self.assertTrue(self.maintainer.remove_from_pocketbook_collection(42, 7))
        self.assertEqual(self.memberships(), [(43, 7)])

    def test_second_removal_is_a_no_op(self):
        self.maintainer.remove_from_pocketbook_collection(42, 7)
        self.log.clear()
        self.assertFalse(self.maintainer.remove_from_pocketbook_collection(42, 7))
        self.assertEqual(self.log.count("SELECT bookshelfid"), 1)
        self.assertEqual(self.log.count("DELETE"), 0)

    def test_string_id_from_settings(self):
        self.assertTrue(self.maintainer.remove_from_pocketbook_collection(42, "7"))

    def test_unusable_id_is_skipped(self):
        self.assertFalse(self.maintainer.remove_from_pocketbook_collection(42, "to-read"))
        self.assertEqual(self.log.statements, [])

    def test_stale_id_is_skipped(self):
        self.assertFalse(self.maintainer.remove_from_pocketbook_collection(42, 99))
        self.assertEqual(self.log.count("DELETE"), 0)

    def test_delete_failure_is_rolled_back(self):
        run_sql(self.db, [
            "CREATE TRIGGER keep_shelf BEFORE DELETE ON bookshelfs_books "
            "BEGIN SELECT RAISE(ABORT, 'shelf locked'); END"
        ])
        with self.assertLogs("pocketbook_sync.shelves", level="ERROR"):
            self.assertFalse(self.maintainer.remove_from_pocketbook_collection(42, 7))
        self.assertEqual(self.memberships(), [(42, 7), (43, 7)])

    def test_check_failure_is_logged(self):
        run_sql(self.db, ["DROP TABLE bookshelfs_books"])
        with self.assertLogs("pocketbook_sync.shelves", level="ERROR"):
            self.assertFalse(self.maintainer.remove_from_pocketbook_collection(42, 7))

    def test_reader_collection_removal(self):
        self.assertTrue(self.maintainer.remove_from_reader_collection(BOOK_PATH, "To Read"))
        self.assertEqual(self.collections.collections["To Read"], set())
        self.assertEqual(self.collections.collections["Favourites"], {BOOK_PATH})
        self.assertEqual(self.collections.saves, 1)

        self.assertFalse(self.maintainer.remove_from_reader_collection(BOOK_PATH, "To Read"))
        self.assertFalse(self.maintainer.remove_from_reader_collection(BOOK_PATH, "Missing"))
        self.assertEqual(self.collections.saves, 1)

    def test_reader_store_failure_is_contained(self):
        def broken_save():
            raise OSError("read-only filesystem")
        self.collections.save = broken_save
        self.assertFalse(self.maintainer.remove_from_reader_collection(BOOK_PATH, "To Read"))

    def test_both_removals_run(self):
        self.global_settings.save_setting(COLLECTION_ID_KEY, 7)
        self.global_settings.save_setting(COLLECTION_NAME_KEY, "To Read")
        self.maintainer.on_book_completed(42, BOOK_PATH)
        self.assertEqual(self.memberships(), [(43, 7)])
        self.assertNotIn(BOOK_PATH, self.collections.collections["To Read"])

    def test_empty_settings_are_unset(self):
        self.global_settings.save_setting(COLLECTION_ID_KEY, "")
        self.global_settings.save_setting(COLLECTION_NAME_KEY, "")
        self.maintainer.on_book_completed(42, BOOK_PATH)
        self.assertEqual(self.log.statements, [])
        self.assertEqual(self.collections.saves, 0)

class TestCollectionSettings(unittest.TestCase):
    def setUp(self):
        self.db = make_db()
        self.global_settings = FakeSettings()
        self.collections = FakeCollections(**{"To Read": [], "Abandoned": [], "Classics": []})
        self.maintainer = CollectionMaintainer(self.db, self.global_settings, self.collections)

    def tearDown(self):
        self.db.close()

    def test_list_is_sorted(self):
        self.assertEqual(self.maintainer.list_collections(), ["Abandoned", "Classics", "To Read"])

    def test_select_known_collection(self):
        self.assertEqual(self.maintainer.select_collection("To Read"), 7)
        self.assertEqual(self.global_settings.data, {COLLECTION_NAME_KEY: "To Read", COLLECTION_ID_KEY: 7})
        self.assertEqual(self.global_settings.flushes, 1)

    def test_select_clears_stale_id(self):
        self.maintainer.select_collection("To Read")
        self.assertIsNone(self.maintainer.select_collection("Old"))
        self.assertEqual(self.global_settings.data, {COLLECTION_NAME_KEY: "Old"})

    def test_clear(self):
        self.maintainer.select_collection("To Read")
        self.maintainer.clear_collection()
        self.assertEqual(self.global_settings.data, {})
        self.assertEqual(self.global_settings.flushes, 2)

if __name__ == '__main__':
    unittest.main()
