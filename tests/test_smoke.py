"""
Smoke tests to verify basic application integrity.
Checks the entry points and package metadata are wired together.
"""
import unittest


class TestSmoke(unittest.TestCase):
    def test_module_entry_point_is_the_typer_app(self):
        """`python -m traefiktop` must run the same command as the console script."""
        import traefiktop.__main__
        import traefiktop.cli
        self.assertIs(traefiktop.__main__.cli, traefiktop.cli.cli)

    def test_app_defaults_to_coordinator_hook(self):
        """The Textual app fetches through the data coordinator unless told otherwise."""
        from traefiktop import coordinator
        from traefiktop.app import TraefikTopApp
        app = TraefikTopApp("http://localhost:8080")
        self.assertIs(app.fetch_hook, coordinator.start)

    def test_client_base_url_and_version(self):
        import traefiktop
        from traefiktop.api import TraefikClient
        client = TraefikClient("http://localhost:8080/")
        self.assertEqual(client.base_url, "http://localhost:8080")
        self.assertRegex(traefiktop.__version__, r"^\d+\.\d+\.\d+$")

    def test_log_path_points_at_traefiktop(self):
        from traefiktop import get_log_path
        self.assertTrue(get_log_path().endswith("traefiktop.log"))


if __name__ == '__main__':
    unittest.main()
