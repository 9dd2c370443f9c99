"""
Dashboard statistics for DealerMaster.
Aggregates inventory, proposal and sales figures with pandas.
"""
import pandas as pd

from dealermaster.data_structures import Actor, ProposalStatus, VehicleStatus
from dealermaster.services.visibility import record_filters

PENDING_PROPOSAL_STATUSES = (ProposalStatus.NEGOTIATING, ProposalStatus.SENT)


class DashboardReport:
    def __init__(self, db_manager):
        self.db = db_manager

    def vehicles_by_status(self):
        """Count vehicles per availability status; every status is present."""
        df = self.db.get_vehicles_df()
        counts = df['status'].value_counts() if not df.empty else pd.Series(dtype=int)
        return {status: int(counts.get(status, 0)) for status in VehicleStatus.ALL}

    def _clients_count(self, filters):
        # A client only ever sees itself
        if 'client_id' in filters:
            return 1 if self.db.get_client(filters['client_id']) is not None else 0
        return self.db.count_clients(filters.get('vendor_id'))

    def get_stats(self, actor: Actor):
        """Headline figures for the dashboard, scoped to what the actor may see."""
        filters = record_filters(actor)
        proposals = self.db.get_proposals_df(**filters)
        sales = self.db.get_sales_df(**filters)

        stats = {
            'vehicles': self.vehicles_by_status(),
            'clients_count': self._clients_count(filters),
            'proposals_count': len(proposals),
            'proposals_pending': int(proposals['status'].isin(PENDING_PROPOSAL_STATUSES).sum()),
            'proposals_approved': int((proposals['status'] == ProposalStatus.APPROVED).sum()),
            'sales_count': len(sales),
            'total_sales_value': float(sales['total_value'].sum()) if not sales.empty else 0.0,
            'total_commissions': float(sales['commission_value'].fillna(0).sum()) if not sales.empty else 0.0,
        }
        return stats

    def sales_by_vendor(self, actor: Actor):
        """Sales count and value per vendor. Only admins get figures.

        Returns:
            DataFrame with columns vendor_id, sales, value (highest value first).
        """
        columns = ['vendor_id', 'sales', 'value']
        if not actor.is_admin:
            return pd.DataFrame(columns=columns)

        sales = self.db.get_sales_df()
        if sales.empty:
            return pd.DataFrame(columns=columns)

        grouped = sales.groupby('vendor_id').agg(
            sales=('id', 'count'),
            value=('total_value', 'sum'),
        ).reset_index()
        return grouped.sort_values('value', ascending=False).reset_index(drop=True)[columns]

    def recent_proposals(self, actor: Actor, limit=5):
        proposals = self.db.get_proposals_df(**record_filters(actor))
        return proposals.head(limit).reset_index(drop=True)
