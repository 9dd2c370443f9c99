"""Tests for dashboard statistics and the simulation export."""
import os
import sys
import tempfile
import unittest
import zipfile

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dealermaster.database import DatabaseManager
from dealermaster.engine import DealerEngine
from dealermaster.data_structures import Actor, Bank, Client, Vehicle, UserRole, VehicleStatus
from dealermaster.simulation_export import SimulationExporter

RATES_A = {12: 1.5, 24: 1.5, 36: 1.5, 48: 1.5, 60: 1.5}
RATES_B = {12: 1.2, 24: 1.2, 36: 1.2, 48: 1.2, 60: 1.2}


class TestDashboardReport(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")
        self.engine = DealerEngine(self.db)
        self.admin = Actor("admin", UserRole.ADMIN)
        self.v1 = Actor("vendor-1")
        self.v2 = Actor("vendor-2")
        self.client_id = self.db.add_client(Client("Elisa", vendor_id="vendor-1"))
        self.db.add_vehicle(Vehicle("Renault", "Kwid", 2023, 2023, 60000))
        self.db.add_vehicle(Vehicle("Renault", "Duster", 2022, 2022, 95000, status=VehicleStatus.RESERVED))

    def tearDown(self):
        self.db.close()

    def sell(self, actor, price):
        vehicle_id = self.db.add_vehicle(Vehicle("Chevrolet", "Onix", 2022, 2022, price))
        result = self.engine.price_cash(price)
        proposal = self.engine.create_proposal_from_result(result, vehicle_id, self.client_id, actor)
        self.engine.proposal_service.send(proposal.id)
        self.engine.proposal_service.approve(proposal.id)
        return self.engine.record_sale(proposal.id, actor)

    def test_empty_store(self):
        db = DatabaseManager(":memory:")
        engine = DealerEngine(db)
        stats = engine.get_dashboard_stats(self.admin)

        self.assertEqual(stats['vehicles'], {'available': 0, 'reserved': 0, 'sold': 0})
        self.assertEqual(stats['proposals_count'], 0)
        self.assertEqual(stats['total_sales_value'], 0.0)
        self.assertTrue(engine.dashboard.sales_by_vendor(self.admin).empty)
        db.close()

    def test_stats(self):
        self.sell(self.v1, 70000)
        self.sell(self.v2, 80000)
        result = self.engine.price_cash(60000)
        pending = self.engine.create_proposal_from_result(result, 1, self.client_id, self.v1)
        self.engine.proposal_service.send(pending.id)

        stats = self.engine.get_dashboard_stats(self.admin)
        self.assertEqual(stats['vehicles'], {'available': 1, 'reserved': 1, 'sold': 2})
        self.assertEqual(stats['proposals_count'], 3)
        self.assertEqual(stats['proposals_pending'], 1)
        self.assertEqual(stats['proposals_approved'], 0)
        self.assertEqual(stats['sales_count'], 2)
        self.assertEqual(stats['total_sales_value'], 150000)
        self.assertEqual(stats['clients_count'], 1)

        own = self.engine.get_dashboard_stats(self.v1)
        self.assertEqual(own['sales_count'], 1)
        self.assertEqual(own['total_sales_value'], 70000)
        self.assertEqual(own['proposals_count'], 2)

    def test_client_sees_only_itself(self):
        self.db.add_client(Client("Fabio", vendor_id="vendor-2"))
        self.sell(self.v1, 70000)

        stats = self.engine.get_dashboard_stats(Actor(str(self.client_id), UserRole.CLIENT))
        self.assertEqual(stats['clients_count'], 1)
        self.assertEqual(stats['sales_count'], 1)
        self.assertEqual(self.engine.get_dashboard_stats(Actor("999", UserRole.CLIENT))['clients_count'], 0)
        self.assertEqual(self.engine.get_dashboard_stats(self.admin)['clients_count'], 2)

    def test_sales_by_vendor(self):
        self.sell(self.v1, 70000)
        self.sell(self.v2, 80000)
        self.sell(self.v2, 30000)

        df = self.engine.dashboard.sales_by_vendor(self.admin)
        self.assertEqual(list(df['vendor_id']), ['vendor-2', 'vendor-1'])
        self.assertEqual(list(df['sales']), [2, 1])
        self.assertEqual(list(df['value']), [110000, 70000])

        self.assertTrue(self.engine.dashboard.sales_by_vendor(self.v1).empty)

    def test_recent_proposals(self):
        for _ in range(3):
            self.engine.create_proposal_from_result(self.engine.price_cash(60000), 1, self.client_id, self.v1)
        self.assertEqual(len(self.engine.dashboard.recent_proposals(self.v1, limit=2)), 2)


class TestSimulationExporter(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")
        self.engine = DealerEngine(self.db)
        self.db.add_bank(Bank("Banco A", RATES_A))
        self.db.add_bank(Bank("Banco B", RATES_B))
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.db.close()
        self.tmpdir.cleanup()

    def test_quotes_frame(self):
        quotes = self.engine.compare_banks(Actor("v1"), 60000, 12000, 24)
        df = SimulationExporter.quotes_frame(quotes)

        self.assertEqual(list(df['Bank']), ["Banco B (recommended)", "Banco A"])
        self.assertAlmostEqual(df['CET (% y)'].iloc[0], 1.2 * 12 * 1.15)

    def test_schedule_frame(self):
        quotes = self.engine.compare_banks(Actor("v1"), 60000, 12000, 24)
        schedule = SimulationExporter.schedule_frame(quotes[0].result)

        self.assertEqual(len(schedule), 24)
        self.assertAlmostEqual(schedule['Principal'].sum(), 48000)
        self.assertEqual(schedule['Balance'].iloc[-1], 0.0)

    def test_export_workbook(self):
        quotes = self.engine.compare_banks(Actor("v1"), 60000, 12000, 24)
        direct = self.engine.price_direct_financed(60000, 12000, 12)

        path = SimulationExporter().export(quotes, self.tmpdir.name, "Renault Kwid 2023", direct_result=direct)

        self.assertTrue(os.path.exists(path))
        self.assertTrue(path.endswith("Simulation_Renault_Kwid_2023.xlsx"))
        with zipfile.ZipFile(path) as archive:
            workbook_xml = archive.read("xl/workbook.xml").decode("utf-8")
        self.assertIn('name="Comparison"', workbook_xml)
        self.assertIn('name="Schedule"', workbook_xml)

    def test_nothing_to_export(self):
        with self.assertRaises(ValueError):
            SimulationExporter().export([], self.tmpdir.name, "Vazio")


if __name__ == '__main__':
    unittest.main()
