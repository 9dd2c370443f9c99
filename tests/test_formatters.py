"""Tests for Brazilian locale display formatting."""
import os
import sys
import unittest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dealermaster.formatters import (
    format_currency, format_percent, format_mileage, format_cpf, format_phone, format_date
)


class TestFormatters(unittest.TestCase):

    def test_currency(self):
        self.assertEqual(format_currency(1234.56), "R$ 1.234,56")
        self.assertEqual(format_currency(1234567.891), "R$ 1.234.567,89")
        self.assertEqual(format_currency(0), "R$ 0,00")
        self.assertEqual(format_currency(None), "R$ 0,00")
        self.assertEqual(format_currency(-50.5), "-R$ 50,50")

    def test_percent(self):
        self.assertEqual(format_percent(1.5), "1,50%")
        self.assertEqual(format_percent(20.7), "20,70%")
        self.assertEqual(format_percent(2.345, decimals=1), "2,3%")

    def test_mileage(self):
        self.assertEqual(format_mileage(12000), "12.000 km")
        self.assertEqual(format_mileage(0), "0 km")
        self.assertEqual(format_mileage(1250300), "1.250.300 km")

    def test_cpf(self):
        self.assertEqual(format_cpf("12345678901"), "123.456.789-01")
        self.assertEqual(format_cpf("123.456.789-01"), "123.456.789-01")
        self.assertEqual(format_cpf("123"), "123")

    def test_phone(self):
        self.assertEqual(format_phone("11987654321"), "(11) 98765-4321")
        self.assertEqual(format_phone("1132654321"), "(11) 3265-4321")

    def test_date(self):
        self.assertEqual(format_date("2026-03-05"), "05/03/2026")
        self.assertEqual(format_date("2026-03-05 10:22:00"), "05/03/2026")
        self.assertEqual(format_date(""), "")
        self.assertEqual(format_date("ontem"), "ontem")


if __name__ == '__main__':
    unittest.main()
