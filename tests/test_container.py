import unittest
from datetime import date, datetime
from unittest.mock import MagicMock

from services.container import build_services


class TestBuildServices(unittest.TestCase):
    def test_services_share_one_time_source(self):
        moment = datetime(2024, 3, 10, 9, 30)
        services = build_services(MagicMock(), now=lambda: moment)

        self.assertEqual(services.finance.clock(), date(2024, 3, 10))
        self.assertEqual(services.expenses.clock(), date(2024, 3, 10))
        self.assertEqual(services.recurring.clock(), date(2024, 3, 10))
        self.assertEqual(services.export.clock(), moment)


if __name__ == "__main__":
    unittest.main()
