"""
Sales Dashboard Analytics

Provides:
- Headline stats (leads, customers, revenue, active contracts, conversion)
- Pipeline breakdown by lead status
- Pipeline chart
"""

import pandas as pd
import altair as alt
from datetime import datetime
from typing import Dict, List

from crm import ContractStatus, LeadStatus

ACTIVE_CONTRACT_STATUSES = {ContractStatus.SENT.value, ContractStatus.SIGNED.value}


class DashboardAnalytics:
    """
    Analytics over the CRM tables.

    Works with anything exposing list_leads / list_customers / list_contracts,
    normally database.SupabaseClient.
    """

    def __init__(self, client):
        self.client = client

    @staticmethod
    def _frame(rows: List[Dict]) -> pd.DataFrame:
        return pd.DataFrame(rows)

    def get_stats(self) -> Dict:
        """
        Headline numbers for the dashboard.

        conversion_rate is customers per lead, as a percentage.
        """
        leads = self._frame(self.client.list_leads())
        customers = self._frame(self.client.list_customers())
        contracts = self._frame(self.client.list_contracts())

        total_leads = len(leads)
        total_customers = len(customers)

        total_revenue = 0.0
        if 'total_value' in customers:
            total_revenue = float(pd.to_numeric(customers['total_value'], errors='coerce').fillna(0).sum())

        active_contracts = 0
        if 'status' in contracts:
            active_contracts = int(contracts['status'].isin(ACTIVE_CONTRACT_STATUSES).sum())

        return {
            "generated_at": datetime.now().isoformat(),
            "total_leads": total_leads,
            "total_customers": total_customers,
            "total_revenue": round(total_revenue, 2),
            "active_contracts": active_contracts,
            "conversion_rate": round(total_customers / total_leads * 100, 1) if total_leads > 0 else 0,
        }

    def pipeline_summary(self) -> pd.DataFrame:
        """
        Lead count and value per pipeline stage.

        Returns one row per lead status in pipeline order, including
        stages with no leads.
        """
        leads = self._frame(self.client.list_leads())
        stages = [status.value for status in LeadStatus]

        if leads.empty or 'status' not in leads:
            return pd.DataFrame({'status': stages, 'count': [0] * len(stages), 'value': [0.0] * len(stages)})

        if 'value' not in leads:
            leads['value'] = 0.0
        leads['value'] = pd.to_numeric(leads['value'], errors='coerce').fillna(0.0)

        grouped = leads.groupby('status').agg(count=('value', 'size'), value=('value', 'sum'))
        summary = grouped.reindex(stages, fill_value=0).reset_index()
        summary = summary.rename(columns={'index': 'status'})
        summary['count'] = summary['count'].astype(int)
        summary['value'] = summary['value'].astype(float)

        return summary[['status', 'count', 'value']]

    def plot_pipeline(self) -> alt.Chart:
        """
        Create bar chart of lead value per pipeline stage.
        """
        df = self.pipeline_summary()

        chart = alt.Chart(df).mark_bar().encode(
            x=alt.X('status:N', title='Stage', sort=list(df['status'])),
            y=alt.Y('value:Q', title='Pipeline Value ($)'),
            tooltip=['status', 'count', 'value']
        ).properties(
            title='Sales Pipeline',
            width=400,
            height=300
        )

        return chart


# Example usage
if __name__ == "__main__":
    from database import get_client

    analytics = DashboardAnalytics(get_client())

    print("Dashboard stats:")
    for key, value in analytics.get_stats().items():
        print(f"  {key}: {value}")

    print("\nPipeline:")
    print(analytics.pipeline_summary().to_string(index=False))
