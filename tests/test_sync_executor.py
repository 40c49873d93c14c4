import tempfile
import unittest
from pathlib import Path

from ghcdn.repository.file_repository import FileRepository
from ghcdn.repository.github_repository import GitHubRepository
from ghcdn.schema.resource import SyncOutcome
from ghcdn.service.exceptions import UpstreamError, UpstreamNotFoundError
from ghcdn.service.resources import (
    FileResource,
    RepoResource,
    RootResource,
    UserResource,
)
from ghcdn.service.sync_executor import SyncExecutor

from support import API_URL, RAW_URL, FakeMinifier, FakeUpstream, make_settings


class SyncExecutorTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.cache_root = Path(self._tmp.name)
        self.settings = make_settings(self._tmp.name)
        self.upstream = FakeUpstream()
        self.minifier = FakeMinifier()
        self.cache_repo = FileRepository(self.settings)
        self.github_repo = GitHubRepository(self.settings, transport=self.upstream.transport)
        self.executor = SyncExecutor(self.cache_repo, self.github_repo, self.minifier)

    async def asyncTearDown(self):
        await self.github_repo.close()
        self._tmp.cleanup()

    def file(self, name: str, tag: str = "v1.0.0") -> FileResource:
        return FileResource("acme", "lib", tag, name, main_ttl=240)

    async def test_200_writes_body_to_cache_key(self):
        self.upstream.add(f"{RAW_URL}/acme/lib/v1.0.0/dist/a.js", body="let a = 1;")

        outcome = await self.executor.sync(self.file("dist/a.js"))

        self.assertEqual(outcome, SyncOutcome.FETCHED)
        cached = self.cache_root / "acme/lib/v1.0.0/dist/a.js"
        self.assertEqual(cached.read_bytes(), b"let a = 1;")
        self.assertEqual([p.name for p in cached.parent.iterdir()], ["a.js"])

    async def test_404_without_fallback_is_terminal(self):
        with self.assertRaises(UpstreamNotFoundError) as ctx:
            await self.executor.sync(self.file("missing.js"))
        self.assertEqual(ctx.exception.status, 404)
        self.assertEqual(ctx.exception.url, f"{RAW_URL}/acme/lib/v1.0.0/missing.js")
        self.assertFalse((self.cache_root / "acme/lib/v1.0.0/missing.js").exists())

    async def test_other_status_is_fatal_and_not_retried(self):
        url = f"{RAW_URL}/acme/lib/v1.0.0/a.js"
        self.upstream.add(url, status=500)

        with self.assertRaises(UpstreamError) as ctx:
            await self.executor.sync(self.file("a.js"))

        self.assertNotIsInstance(ctx.exception, UpstreamNotFoundError)
        self.assertEqual(ctx.exception.status, 500)
        self.assertEqual(self.upstream.calls(url), 1)

    async def test_min_js_made_from_cached_source(self):
        source = self.cache_root / "acme/lib/v1.0.0/foo.js"
        source.parent.mkdir(parents=True)
        source.write_bytes(b"  let a = 1;\n  let b = 2;\n")

        outcome = await self.executor.sync(self.file("foo.min.js"))

        self.assertEqual(outcome, SyncOutcome.NOT_FOUND_HANDLED)
        minified = self.cache_root / "acme/lib/v1.0.0/foo.min.js"
        self.assertEqual(minified.read_bytes(), b"let a = 1;let b = 2;")
        self.assertEqual(self.minifier.calls, [(source.read_bytes(), ".js")])
        self.assertEqual(self.upstream.calls(f"{RAW_URL}/acme/lib/v1.0.0/foo.js"), 0)

    async def test_min_js_fetches_missing_source_first(self):
        self.upstream.add(f"{RAW_URL}/acme/lib/v1.0.0/foo.js", body="x = 1;\n")

        await self.executor.sync(self.file("foo.min.js"))

        self.assertEqual((self.cache_root / "acme/lib/v1.0.0/foo.js").read_bytes(), b"x = 1;\n")
        self.assertEqual(
            (self.cache_root / "acme/lib/v1.0.0/foo.min.js").read_bytes(), b"x = 1;"
        )

    async def test_min_js_surfaces_404_when_source_missing_too(self):
        with self.assertRaises(UpstreamNotFoundError) as ctx:
            await self.executor.sync(self.file("foo.min.js"))
        self.assertEqual(ctx.exception.url, f"{RAW_URL}/acme/lib/v1.0.0/foo.min.js")
        # one request for the minified file, one for its source, no further chain
        self.assertEqual(len(self.upstream.requests), 2)

    async def test_min_js_surfaces_404_when_minifier_fails(self):
        self.minifier.fail = True
        self.upstream.add(f"{RAW_URL}/acme/lib/v1.0.0/foo.js", body="x = 1;")

        with self.assertRaises(UpstreamNotFoundError):
            await self.executor.sync(self.file("foo.min.js"))
        self.assertFalse((self.cache_root / "acme/lib/v1.0.0/foo.min.js").exists())

    async def test_min_js_surfaces_404_when_source_unreadable(self):
        (self.cache_root / "acme/lib/v1.0.0/foo.js").mkdir(parents=True)

        with self.assertRaises(UpstreamNotFoundError) as ctx:
            await self.executor.sync(self.file("foo.min.js"))
        self.assertEqual(ctx.exception.url, f"{RAW_URL}/acme/lib/v1.0.0/foo.min.js")
        self.assertEqual(self.minifier.calls, [])

    async def test_repo_fetches_releases_with_auth(self):
        url = f"{API_URL}/repos/acme/lib/releases?per_page=200"
        self.upstream.add(url, body=[{"tag_name": "v1.0.0"}])

        await self.executor.sync(RepoResource("acme", "lib", listing_ttl=1800))

        self.assertTrue((self.cache_root / "acme/lib/__index.json").exists())
        self.assertTrue(self.upstream.requests[0].headers["authorization"].startswith("Basic "))

    async def test_raw_requests_carry_no_auth(self):
        self.upstream.add(f"{RAW_URL}/acme/lib/v1.0.0/a.js", body="1")
        await self.executor.sync(self.file("a.js"))
        self.assertNotIn("authorization", self.upstream.requests[0].headers)

    async def test_user_falls_back_to_user_repos(self):
        users_url = f"{API_URL}/users/jane/repos?per_page=200"
        self.upstream.add(users_url, body=[{"name": "dotfiles"}])

        await self.executor.sync(UserResource("jane", listing_ttl=1800))

        self.assertEqual(self.upstream.calls(f"{API_URL}/orgs/jane/repos?per_page=200"), 1)
        self.assertEqual(self.upstream.calls(users_url), 1)
        self.assertIn(b"dotfiles", (self.cache_root / "jane/__index.json").read_bytes())

    async def test_user_fallback_does_not_apply_to_other_statuses(self):
        self.upstream.add(f"{API_URL}/orgs/acme/repos?per_page=200", status=403)

        with self.assertRaises(UpstreamError) as ctx:
            await self.executor.sync(UserResource("acme", listing_ttl=1800))

        self.assertEqual(ctx.exception.status, 403)
        self.assertEqual(self.upstream.calls(f"{API_URL}/users/acme/repos?per_page=200"), 0)

    async def test_root_fetches_configured_org(self):
        self.upstream.add(f"{API_URL}/orgs/u1ui/repos?per_page=200", body=[])
        await self.executor.sync(RootResource("u1ui"))
        self.assertEqual((self.cache_root / "__index.json").read_bytes(), b"[]")

    async def test_size_limit_refuses_large_files(self):
        self.settings.max_file_size_bytes = 4
        self.upstream.add(f"{RAW_URL}/acme/lib/v1.0.0/big.js", body="0123456789")

        with self.assertRaises(UpstreamError) as ctx:
            await self.executor.sync(self.file("big.js"))

        self.assertEqual(ctx.exception.status, 413)
        self.assertFalse((self.cache_root / "acme/lib/v1.0.0/big.js").exists())


if __name__ == "__main__":
    unittest.main()
