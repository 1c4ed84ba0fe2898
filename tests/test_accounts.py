import unittest

from mail_admin.accounts import (
    Pagination,
    Principal,
    PrincipalList,
    avatar_initial,
    display_name,
    fetch_accounts,
    maybe_plural,
    parse_filter,
    parse_page,
    principal_from_json,
    quota_percent,
    total_pages,
    type_label,
)


class FakeDirectory:
    def __init__(self, names, page_size):
        self.names = names
        self.page_size = page_size
        self.calls = []

    def list_principals(self, token, *, page, limit, typ="individual", filter=None):
        self.calls.append(("list", token, page, limit, typ, filter))
        start = (page - 1) * limit
        return PrincipalList(items=self.names[start:start + limit], total=len(self.names))

    def get_principal(self, token, name):
        self.calls.append(("get", token, name))
        return Principal(id=len(self.calls), typ="individual", name=name)


class TestPagination(unittest.TestCase):
    def test_total_pages(self):
        self.assertEqual(total_pages(0, 10), 0)
        self.assertEqual(total_pages(1, 10), 1)
        self.assertEqual(total_pages(10, 10), 1)
        self.assertEqual(total_pages(11, 10), 2)
        self.assertEqual(total_pages(3, 1), 3)

    def test_page_past_the_end(self):
        client = FakeDirectory(["alice"], page_size=1)
        result = fetch_accounts(client, "tok", page=3, page_size=1)
        self.assertEqual(result.items, [])
        self.assertEqual(result.total, 1)

        p = Pagination(page=3, page_size=1, total=result.total)
        self.assertFalse(p.has_next)
        self.assertTrue(p.has_prev)

    def test_next_hidden_while_pending(self):
        p = Pagination(page=1, page_size=1, total=5)
        self.assertTrue(p.has_next)
        self.assertFalse(Pagination(page=1, page_size=1, total=5, pending=True).has_next)

    def test_first_page(self):
        p = Pagination(page=1, page_size=2, total=5)
        self.assertFalse(p.has_prev)
        self.assertTrue(p.has_next)
        self.assertEqual(p.pages, [1, 2, 3])

    def test_query_parsing(self):
        self.assertEqual(parse_page(None), 1)
        self.assertEqual(parse_page(""), 1)
        self.assertEqual(parse_page("abc"), 1)
        self.assertEqual(parse_page("0"), 1)
        self.assertEqual(parse_page(" 4 "), 4)
        self.assertIsNone(parse_filter(None))
        self.assertIsNone(parse_filter("   "))
        self.assertEqual(parse_filter(" jane "), "jane")


class TestFetchAccounts(unittest.TestCase):
    def test_fetches_each_principal(self):
        client = FakeDirectory(["alice", "bob", "carol"], page_size=2)
        result = fetch_accounts(client, "tok", page=1, page_size=2, filter="a")
        self.assertEqual([p.name for p in result.items], ["alice", "bob"])
        self.assertEqual(result.total, 3)
        self.assertEqual(client.calls[0], ("list", "tok", 1, 2, "individual", "a"))


class TestPresentation(unittest.TestCase):
    def test_principal_from_json(self):
        p = principal_from_json(
            {
                "id": 7,
                "type": "superuser",
                "name": "admin",
                "description": "",
                "quota": 1000,
                "usedQuota": 250,
                "emails": "admin@example.org",
                "memberOf": ["staff", "ops"],
            }
        )
        self.assertEqual(p.id, 7)
        self.assertIsNone(p.description)
        self.assertEqual(p.emails, ["admin@example.org"])
        self.assertEqual(p.member_of, ["staff", "ops"])
        self.assertEqual(quota_percent(p), "25%")
        self.assertEqual(type_label(p), "Admin")

    def test_display_name(self):
        self.assertEqual(display_name(Principal(id=1, typ=None, name="jdoe", description="Jane Doe")), "Jane Doe")
        self.assertEqual(display_name(Principal(id=1, typ=None, name="jdoe")), "jdoe")
        unknown = Principal(id=1, typ=None, name=None)
        self.assertEqual(display_name(unknown), "Unknown")
        self.assertEqual(avatar_initial(Principal(id=1, typ=None, name="élodie")), "É")

    def test_quota_not_available(self):
        self.assertEqual(quota_percent(Principal(id=1, typ=None, name="x")), "N/A")
        self.assertEqual(quota_percent(Principal(id=1, typ=None, name="x", quota=0, used_quota=5)), "N/A")
        self.assertEqual(type_label(Principal(id=1, typ="individual", name="x")), "Individual")

    def test_maybe_plural(self):
        self.assertEqual(maybe_plural(0, "group", "groups"), "0 groups")
        self.assertEqual(maybe_plural(1, "address", "addresses"), "1 address")
        self.assertEqual(maybe_plural(2, "address", "addresses"), "2 addresses")
