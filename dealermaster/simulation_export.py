"""
Simulation comparison export for DealerMaster.
Writes ranked bank quotes, the direct financing option and the amortization
schedule of the recommended quote to an Excel workbook.
"""
import logging
import os
import re
import pandas as pd

from dealermaster.services.amortization import build_amortization_schedule

logger = logging.getLogger(__name__)

QUOTE_COLUMNS = ["Bank", "Term", "Rate Tier", "Monthly Rate (%)", "Installment", "Total", "CET (% y)", "Commission"]


class SimulationExporter:
    """Exports a financing comparison as .xlsx via pandas + xlsxwriter."""

    @staticmethod
    def _sanitize_filename(name):
        """Remove characters that are not allowed in file names."""
        name = re.sub(r'[\\/*?:"<>|]', "", name or "")
        return name.strip().replace(" ", "_") or "Simulation"

    @staticmethod
    def quotes_frame(quotes):
        """Ranked bank quotes as a DataFrame, recommended quote first."""
        rows = []
        for quote in quotes:
            result = quote.result
            rows.append({
                "Bank": quote.bank.name + (" (recommended)" if quote.recommended else ""),
                "Term": result.installment_count,
                "Rate Tier": result.used_term,
                "Monthly Rate (%)": result.monthly_rate_percent,
                "Installment": result.installment_value,
                "Total": result.total_value,
                "CET (% y)": result.cet_estimate * 100,
                "Commission": result.vendor_commission,
            })
        return pd.DataFrame(rows, columns=QUOTE_COLUMNS)

    @staticmethod
    def schedule_frame(result):
        """Amortization schedule of a bank-financed result."""
        rows = build_amortization_schedule(
            result.financed_amount, result.monthly_rate_percent / 100, result.installment_count
        )
        return pd.DataFrame(
            [(r.number, r.installment, r.interest, r.principal, r.balance) for r in rows],
            columns=["#", "Installment", "Interest", "Principal", "Balance"]
        )

    def export(self, quotes, folder, title, direct_result=None):
        """Write the comparison workbook.

        Args:
            quotes: BankQuote list as returned by DealPricer.compare_banks.
            folder: Output folder path.
            title: Document title, usually the vehicle name.
            direct_result: Optional direct financing DealResult for comparison.

        Returns:
            Path of the written file.
        """
        if not quotes and direct_result is None:
            raise ValueError("Nothing to export: no quotes and no direct financing option.")

        filename = f"Simulation_{self._sanitize_filename(title)}.xlsx"
        path = os.path.join(folder, filename)
        quotes_df = self.quotes_frame(quotes)
        recommended = next((q for q in quotes if q.recommended), None)

        with pd.ExcelWriter(path, engine='xlsxwriter') as writer:
            workbook = writer.book
            worksheet = workbook.add_worksheet("Comparison")

            # Formats
            header_fmt = workbook.add_format({
                'bold': True, 'font_size': 14, 'align': 'center',
                'bg_color': '#2b5797', 'font_color': 'white'
            })
            sub_header_fmt = workbook.add_format({
                'bold': True, 'font_size': 12, 'bg_color': '#e0e0e0', 'border': 1
            })
            col_header_fmt = workbook.add_format({
                'bold': True, 'bg_color': '#f0f0f0', 'border': 1
            })
            best_fmt = workbook.add_format({'border': 1, 'bg_color': '#d4edda'})
            cell_fmt = workbook.add_format({'border': 1})
            currency_fmt = workbook.add_format({'border': 1, 'num_format': '#,##0.00'})

            worksheet.merge_range(0, 0, 0, len(QUOTE_COLUMNS) - 1, f"Financing Simulation - {title}", header_fmt)
            worksheet.set_column(0, 0, 28)
            worksheet.set_column(1, len(QUOTE_COLUMNS) - 1, 15)

            row_idx = 2
            if not quotes_df.empty:
                worksheet.merge_range(row_idx, 0, row_idx, len(QUOTE_COLUMNS) - 1, "Bank Financing", sub_header_fmt)
                row_idx += 1
                for col, header in enumerate(QUOTE_COLUMNS):
                    worksheet.write(row_idx, col, header, col_header_fmt)
                row_idx += 1

                for i, record in enumerate(quotes_df.itertuples(index=False)):
                    for col, val in enumerate(record):
                        if i == 0 and col == 0:
                            worksheet.write(row_idx, col, val, best_fmt)
                        elif isinstance(val, float):
                            worksheet.write(row_idx, col, val, currency_fmt)
                        else:
                            worksheet.write(row_idx, col, val, cell_fmt)
                    row_idx += 1
                row_idx += 1

            if direct_result is not None:
                worksheet.merge_range(row_idx, 0, row_idx, 3, "Direct Financing", sub_header_fmt)
                row_idx += 1
                for col, header in enumerate(["Down Payment", "Term", "Installment", "Total"]):
                    worksheet.write(row_idx, col, header, col_header_fmt)
                row_idx += 1
                worksheet.write(row_idx, 0, direct_result.down_payment, currency_fmt)
                worksheet.write(row_idx, 1, direct_result.installment_count, cell_fmt)
                worksheet.write(row_idx, 2, direct_result.installment_value, currency_fmt)
                worksheet.write(row_idx, 3, direct_result.total_value, currency_fmt)

            if recommended is not None:
                schedule = self.schedule_frame(recommended.result)
                schedule.to_excel(writer, sheet_name="Schedule", index=False)

        logger.info("Simulation exported to %s", path)
        return path
