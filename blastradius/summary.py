"""Markdown rendering of an impact analysis."""

from __future__ import annotations

import posixpath
from collections import Counter
from typing import Dict, List, Tuple

from .models import ChangeType, ImpactAnalysis, ImpactLevel
from .risk import risk_level

RISK_EMOJI: Dict[str, str] = {
    "CRITICAL": "🔴",
    "HIGH": "🟠",
    "MEDIUM": "🟡",
    "LOW": "🟢",
    "MINIMAL": "🔵",
}

MAX_CRITICAL_LISTED = 8
MAX_HIGH_LISTED = 6
MAX_CYCLES_LISTED = 3
MAX_RECOMMENDATIONS_LISTED = 8


def pro_tip(risk_score: float, change_type: ChangeType, critical_count: int) -> str:
    if risk_score >= 8:
        return "This is a high-risk change. Consider implementing it in phases with feature flags."
    if change_type is ChangeType.DELETE and critical_count > 0:
        return "Deleting files with dependencies requires careful coordination. Deprecate first, then remove."
    if change_type is ChangeType.REFACTOR and critical_count > 5:
        return "Large refactoring detected. Consider using the Strangler Fig pattern for gradual migration."
    if risk_score >= 5:
        return "Deploy during low-traffic hours and monitor key metrics closely."
    return "Impact looks manageable. Standard testing and deployment practices should suffice."


def file_type_breakdown(analysis: ImpactAnalysis, limit: int = 8) -> List[Tuple[str, int, str]]:
    """(extension, count, risk label) for the most common extensions."""
    counts: Counter = Counter()
    worst: Dict[str, int] = {}
    for item in analysis.impacted_files:
        ext = posixpath.splitext(item.path)[1].lower() or "No Extension"
        counts[ext] += 1
        worst[ext] = max(worst.get(ext, 0), item.impact_level.severity)

    rows = []
    for ext, count in counts.most_common(limit):
        if worst[ext] >= ImpactLevel.CRITICAL.severity:
            label = "Critical Risk"
        elif worst[ext] >= ImpactLevel.HIGH.severity:
            label = "High Risk"
        elif count > 5:
            label = "Medium Risk"
        else:
            label = "Low Risk"
        rows.append((ext, count, label))
    return rows


def _format_cycle(cycle: List[str]) -> str:
    names = " → ".join(posixpath.basename(node) for node in cycle[:3])
    return names + (" → ..." if len(cycle) > 3 else "")


def render_markdown(analysis: ImpactAnalysis) -> str:
    """Human-readable report of an :class:`ImpactAnalysis`."""
    critical = analysis.files_at(ImpactLevel.CRITICAL)
    high = analysis.files_at(ImpactLevel.HIGH)
    medium = analysis.files_at(ImpactLevel.MEDIUM)
    low = analysis.files_at(ImpactLevel.LOW)
    total = len(analysis.impacted_files)
    level = risk_level(analysis.risk_score)
    high_risk_pct = round((len(critical) + len(high)) / total * 100) if total else 0
    meta = analysis.metadata

    lines: List[str] = [
        f"# 🎯 Impact Analysis: {posixpath.basename(analysis.target)}",
        "",
        f"**📋 Summary:** {analysis.change_type.value.capitalize()} operation affecting "
        f"**{total} files** with **{level}** risk level",
        "",
        "## 📊 Risk Assessment",
        "",
        f"{RISK_EMOJI[level]} **Risk Score: {analysis.risk_score}/10 ({level})**",
        f"- **High-Risk Files:** {len(critical) + len(high)}/{total} ({high_risk_pct}%)",
        f"- **Analysis Time:** {meta.analysis_time_ms}ms",
        f"- **Traversal Depth:** {meta.depth}",
    ]
    if meta.truncated:
        lines.append("- **Note:** traversal stopped at a limit; results are partial")
    if meta.degraded:
        lines.append(f"- **Fallbacks used:** {', '.join(meta.degraded)}")
    lines.append("")

    if critical:
        lines += ["## 🔴 Critical Impact (Immediate Breakage)", "",
                  "These files will **break immediately** when you make this change:", ""]
        lines += [f"- **{posixpath.basename(f.path)}** `{f.path}`" for f in critical[:MAX_CRITICAL_LISTED]]
        if len(critical) > MAX_CRITICAL_LISTED:
            lines.append(f"- *... and {len(critical) - MAX_CRITICAL_LISTED} more critical files*")
        lines.append("")

    if high:
        lines += ["## 🟠 High Impact (Likely Affected)", ""]
        lines += [f"- **{posixpath.basename(f.path)}** - {f.reason}" for f in high[:MAX_HIGH_LISTED]]
        if len(high) > MAX_HIGH_LISTED:
            lines.append(f"- *... and {len(high) - MAX_HIGH_LISTED} more high-impact files*")
        lines.append("")

    if medium or low:
        lines += ["## 📈 Additional Impact", ""]
        if medium:
            lines.append(f"🟡 **Medium Impact:** {len(medium)} files may need attention")
        if low:
            lines.append(f"🟢 **Low Impact:** {len(low)} files with minimal risk")
        lines.append("")

    breakdown = file_type_breakdown(analysis)
    if breakdown:
        lines += ["## 📁 File Type Breakdown", ""]
        lines += [f"- **{ext}:** {count} files ({label})" for ext, count, label in breakdown]
        lines.append("")

    cycles = analysis.circular_dependencies
    if cycles:
        lines += ["## 🔄 Circular Dependencies Alert", "",
                  f"⚠️ **{len(cycles)} circular dependency chains detected!**", ""]
        lines += [f"- {_format_cycle(cycle)}" for cycle in cycles[:MAX_CYCLES_LISTED]]
        if len(cycles) > MAX_CYCLES_LISTED:
            lines.append(f"- *... and {len(cycles) - MAX_CYCLES_LISTED} more cycles*")
        lines.append("")

    if analysis.recommendations:
        lines += ["## 🛡️ Recommended Safeguards", ""]
        lines += [f"- {rec}" for rec in analysis.recommendations[:MAX_RECOMMENDATIONS_LISTED]]
        lines.append("")

    lines += ["## 💡 Pro Tip", "",
              f"**{pro_tip(analysis.risk_score, analysis.change_type, len(critical))}**", ""]

    lines += ["## ✅ Pre-Deployment Checklist", "",
              f"- [ ] Review all {len(critical)} critical files",
              "- [ ] Update imports and references",
              "- [ ] Run comprehensive test suite"]
    if critical:
        lines.append("- [ ] Test critical functionality thoroughly")
    if analysis.risk_score >= 7:
        lines.append("- [ ] Consider feature flags or gradual rollout")
    if cycles:
        lines.append("- [ ] Address circular dependencies")
    lines.append("- [ ] Monitor deployment closely")

    return "\n".join(lines) + "\n"
