"""
Report Generator Module
Purpose: Render the reconciliation as a text report, a JSON document, and an optional Excel workbook

Outputs (one run, one timestamp):
  <prefix>_<YYYYmmdd_HHMMSS>.txt   human-readable report
  <prefix>_<YYYYmmdd_HHMMSS>.json  report_metadata / executive_summary / tenant_details
  <prefix>_<YYYYmmdd_HHMMSS>.xlsx  optional workbook (Executive Summary, Tenants, Registered Users)
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
from loguru import logger
from openpyxl import load_workbook
from openpyxl.styles import Alignment, Font, PatternFill

from netbird_msp.config import get_default_config
from netbird_msp.models import ExecutiveSummary, ReportEntry

BANNER = "═" * 59
RULE = "─" * 45
USER_COLUMNS = ["Name", "Email", "Role", "Last Login", "Billing Status"]


# ============================================================================
# TABLE HELPERS
# ============================================================================

def billing_status_label(entry: ReportEntry) -> str:
    # tenant-level approximation: the API has no per-user billing attribution
    return "Billable" if entry.billable_count > 0 else "Not Billable"


def users_frame(entry: ReportEntry) -> pd.DataFrame:
    """Registered user table for one tenant"""
    status = billing_status_label(entry)
    rows = [
        {
            "Name": user.display_name,
            "Email": user.email,
            "Role": user.display_role,
            "Last Login": user.display_last_login,
            "Billing Status": status,
        }
        for user in entry.record.users
    ]
    return pd.DataFrame(rows, columns=USER_COLUMNS)


def role_distribution(users_df: pd.DataFrame) -> List[Tuple[str, int]]:
    """(role, count) pairs in first-seen order"""
    if users_df.empty:
        return []
    counts = users_df.groupby("Role", sort=False).size()
    return [(str(role), int(count)) for role, count in counts.items()]


def format_table(df: pd.DataFrame, indent: str = "   ") -> List[str]:
    """Left-aligned plain-text table with a dashed rule under the header"""
    cells = df.astype(str)
    widths = {col: max([len(col)] + cells[col].str.len().tolist()) for col in df.columns}

    def line(values: Sequence[str]) -> str:
        return indent + "  ".join(v.ljust(widths[c]) for c, v in zip(df.columns, values)).rstrip()

    lines = [line(list(df.columns)), line(["-" * len(c) for c in df.columns])]
    for row in cells.itertuples(index=False):
        lines.append(line(list(row)))
    return lines


def tenants_frame(entries: Sequence[ReportEntry]) -> pd.DataFrame:
    rows = []
    for entry in entries:
        tenant = entry.record.tenant
        billing = entry.record.billing
        rows.append({
            "tenant_id": tenant.id,
            "tenant_name": tenant.name,
            "domain": tenant.domain,
            "status": tenant.status,
            "billing_plan": str(entry.record.plan),
            "skipped": entry.skipped,
            "registered_users": entry.registered_count,
            "billable_users": entry.billable_count,
            "difference": entry.difference,
            "savings_%": entry.savings_percent,
            "efficiency_%": entry.efficiency_percent,
            "active_peers": billing.active_peers,
            "total_users": billing.total_users,
            "total_peers": billing.total_peers,
            "warnings": " | ".join(entry.record.warnings),
        })
    return pd.DataFrame(rows)


def executive_frame(summary: ExecutiveSummary) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "Metric": [
                "Total Tenants",
                "Total Registered Users",
                "Total Billable Users",
                "Total Difference",
                "Savings %",
                "Efficiency %",
            ],
            "Value": [
                summary.tenant_count,
                summary.total_registered,
                summary.total_billable,
                summary.total_difference,
                summary.total_savings_percent,
                summary.total_efficiency_percent,
            ],
        }
    )


# ============================================================================
# REPORT GENERATOR
# ============================================================================

class ReportGenerator:
    """Build and write the text, JSON and Excel reports for one run"""

    def __init__(
        self,
        output_folder: str = ".",
        cfg: Optional[Dict] = None,
        api_endpoint: str = "",
        generated_at: Optional[datetime] = None,
        excel: bool = False,
    ):
        self.output_folder = Path(output_folder)
        self.cfg = cfg or get_default_config()
        self.api_endpoint = api_endpoint or self.cfg["api"]["base_url"]
        self.generated_at = generated_at or datetime.now(timezone.utc)
        self.excel = excel

        prefix = self.cfg["output"].get("file_prefix", "netbird_comprehensive")
        # file names use local wall-clock time; the JSON timestamp stays UTC
        stamp = self.generated_at.astimezone().strftime("%Y%m%d_%H%M%S")
        self.text_path = self.output_folder / f"{prefix}_{stamp}.txt"
        self.json_path = self.output_folder / f"{prefix}_{stamp}.json"
        self.excel_path = self.output_folder / f"{prefix}_{stamp}.xlsx"

    @property
    def output_paths(self) -> List[Path]:
        paths = [self.text_path, self.json_path]
        if self.excel:
            paths.append(self.excel_path)
        return paths

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------

    def emit(self, summary: ExecutiveSummary, entries: Sequence[ReportEntry]) -> Tuple[str, Dict]:
        """Render (text report, JSON document); no I/O"""
        return self.render_text(summary, entries), self.render_json(summary, entries)

    def render_text(self, summary: ExecutiveSummary, entries: Sequence[ReportEntry]) -> str:
        out: List[str] = []
        out += [
            BANNER,
            "          NETBIRD MSP COMPREHENSIVE BILLING REPORT",
            BANNER,
            f"Generated: {self.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z')}",
            "",
            "📊 COMPREHENSIVE ANALYSIS:",
            "• Registered Users = Active & unblocked users in NetBird",
            "• Billable Users   = Users who connected in current billing cycle",
            "• This uses NetBird's official billing API for accurate data",
            "",
            f"Found {summary.tenant_count} tenant(s)",
            "",
            "DETAILED TENANT ANALYSIS",
            "========================",
        ]

        for entry in entries:
            out += self._tenant_section(entry)

        out += [
            "",
            BANNER,
            "",
            "🎯 COMPREHENSIVE SUMMARY",
            "========================",
            f"Total Tenants Analyzed:     {summary.tenant_count}",
            f"Total Registered Users:     {summary.total_registered}",
            f"Total Billable Users:       {summary.total_billable}",
            f"Total Difference:           {summary.total_difference}",
            f"Potential Savings:          {summary.total_savings_percent}%",
            f"Billing Efficiency:         {summary.total_efficiency_percent}%",
        ]
        if summary.is_anomaly:
            out.append("⚠️  Unusual: More billable than registered users overall")

        out += ["", BANNER, "", "📁 GENERATED FILES", "=================="]
        out.append(f"• Comprehensive Report: {self.text_path.name}")
        out.append(f"• Detailed JSON Data:   {self.json_path.name}")
        if self.excel:
            out.append(f"• Excel Workbook:       {self.excel_path.name}")
        out += ["", BANNER]
        return "\n".join(out) + "\n"

    def _tenant_section(self, entry: ReportEntry) -> List[str]:
        record = entry.record
        tenant = record.tenant
        lines = [
            "",
            RULE,
            f"🏢 Tenant: {tenant.name}",
            f"🌐 Domain: {tenant.domain}",
            f"🆔 ID: {tenant.id}",
            f"📊 Status: {tenant.status}",
            f"🧾 Billing Plan: {record.plan}",
        ]
        if record.plan.is_unknown:
            lines.append("   ⚠️  Plan detection failed; proceeding without plan info")

        if entry.skipped:
            lines.append("⚠️  Skipping inactive tenant")
            return lines

        lines += [
            "",
            "📈 BILLING ANALYSIS:",
            f"   Registered Users: {entry.registered_count}",
            f"   Billable Users:   {entry.billable_count}",
            f"   Difference:       {entry.difference}",
            f"   Savings:          {entry.savings_percent}%",
            f"   Efficiency:       {entry.efficiency_percent}%",
        ]
        if entry.is_anomaly:
            lines.append("   ⚠️  Unusual: More billable than registered users")
        for warning in record.warnings:
            if warning.startswith("Plan detection"):
                continue
            lines.append(f"   ⚠️  {warning}")

        billing = record.billing
        lines += [
            "",
            "📊 BILLING USAGE BREAKDOWN:",
            f"   Active Peers:     {billing.active_peers}",
            f"   Total Users:      {billing.total_users}",
            f"   Total Peers:      {billing.total_peers}",
        ]

        if entry.registered_count > 0:
            df = users_frame(entry)
            lines += ["", "👥 REGISTERED USER DETAILS:"]
            lines += format_table(df)
            lines += ["", "📋 Role Distribution:"]
            lines += [f"   • {count} {role}" for role, count in role_distribution(df)]

        return lines

    def render_json(self, summary: ExecutiveSummary, entries: Sequence[ReportEntry]) -> Dict:
        report_cfg = self.cfg["report"]
        return {
            "report_metadata": {
                "generated_at": self.generated_at.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
                "report_type": report_cfg["report_type"],
                "api_endpoint": self.api_endpoint,
                "version": report_cfg["version"],
                "description": report_cfg["description"],
            },
            "executive_summary": summary.to_dict(),
            "tenant_details": [self._tenant_json(entry) for entry in entries if not entry.skipped],
        }

    @staticmethod
    def _tenant_json(entry: ReportEntry) -> Dict:
        record = entry.record
        tenant = record.tenant
        return {
            "tenant_info": {
                "id": tenant.id,
                "name": tenant.name,
                "domain": tenant.domain,
                "status": tenant.status,
                "billing_plan": str(record.plan),
            },
            "metrics": {
                "registered_active_users": entry.registered_count,
                "billable_active_users": entry.billable_count,
            },
            "billing_usage": record.billing.to_dict(),
            "registered_users": [user.raw for user in record.users],
        }

    # ------------------------------------------------------------------
    # writing
    # ------------------------------------------------------------------

    def write(self, summary: ExecutiveSummary, entries: Sequence[ReportEntry]) -> List[Path]:
        """Render and write every artifact; returns the written paths"""
        logger.info("=" * 80)
        logger.info("GENERATING REPORTS")
        logger.info("=" * 80)

        text, document = self.emit(summary, entries)
        self.output_folder.mkdir(parents=True, exist_ok=True)

        self.text_path.write_text(text, encoding="utf-8")
        logger.info(f"✓ Text report: {self.text_path}")

        with open(self.json_path, "w", encoding="utf-8") as fh:
            json.dump(document, fh, indent=4, ensure_ascii=False)
            fh.write("\n")
        logger.info(f"✓ JSON report: {self.json_path}")

        if self.excel:
            self.write_excel(summary, entries)

        return self.output_paths

    def write_excel(self, summary: ExecutiveSummary, entries: Sequence[ReportEntry]) -> Path:
        user_frames = []
        for entry in entries:
            if entry.skipped or not entry.record.users:
                continue
            df = users_frame(entry)
            df.insert(0, "Tenant", entry.record.tenant.name)
            user_frames.append(df)
        users_df = pd.concat(user_frames, ignore_index=True) if user_frames else pd.DataFrame(columns=["Tenant"] + USER_COLUMNS)

        with pd.ExcelWriter(self.excel_path, engine="openpyxl") as writer:
            executive_frame(summary).to_excel(writer, sheet_name="Executive Summary", index=False)
            tenants_frame(entries).to_excel(writer, sheet_name="Tenants", index=False)
            users_df.to_excel(writer, sheet_name="Registered Users", index=False)

        self._format_excel(self.excel_path)
        logger.info(f"✓ Excel workbook: {self.excel_path}")
        return self.excel_path

    def _format_excel(self, filepath: Path) -> None:
        """Header colours, column widths, frozen header row"""
        workbook = load_workbook(filepath)

        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        header_font = Font(bold=True, color="FFFFFF")

        for worksheet in workbook.worksheets:
            for column in worksheet.columns:
                max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
                worksheet.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

            for cell in worksheet[1]:
                if cell.value:
                    cell.fill = header_fill
                    cell.font = header_font
                    cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

            worksheet.freeze_panes = "A2"

        workbook.save(filepath)
