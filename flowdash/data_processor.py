"""
Customer Flow Dashboard - Data Processor
Aggregate a location's CSV rows into chart-ready tables
"""
from typing import List, Union

import pandas as pd

from flowdash.ingest import NAME_COLUMNS

# Source columns
CHANNEL = "SatisKanali"
CUSTOMER_TYPE = "MusteriCesidi"
SEGMENT = "Mapin Segment"
REGION = "MusteriBolge3"
SUB_REGION = "MusteriBolge4"
VISITORS = "visitor_count"

TOP_N = 10


def to_frame(rows: Union[pd.DataFrame, List[dict]]) -> pd.DataFrame:
    df = rows.copy() if isinstance(rows, pd.DataFrame) else pd.DataFrame(list(rows))
    if VISITORS in df.columns:
        df[VISITORS] = pd.to_numeric(df[VISITORS], errors="coerce").fillna(0)
    else:
        df[VISITORS] = 0
    return df


def _pct(part, whole, digits):
    return round(float(part) / whole * 100, digits) if whole else 0.0


def _labels(df, column):
    return df[column].fillna("Unknown").astype(str)


def count_distribution(df: pd.DataFrame, column: str) -> list:
    """Row count and share per value of a column, largest first."""
    if column not in df.columns or df.empty:
        return []
    counts = _labels(df, column).value_counts()
    total = len(df)
    return [
        {"name": name, "value": int(count), "percent": _pct(count, total, 2)}
        for name, count in counts.items()
    ]


def visitor_distribution(df: pd.DataFrame, column: str, total_visitors: float) -> list:
    """Visitors summed per value of a column, largest first."""
    if column not in df.columns or df.empty:
        return []
    sums = df.groupby(_labels(df, column), sort=False)[VISITORS].sum()
    sums = sums.sort_values(ascending=False, kind="stable")
    return [
        {"name": name, "visitors": int(v), "visitorPercent": _pct(v, total_visitors, 1)}
        for name, v in sums.items()
    ]


def visitors_by_segment(df: pd.DataFrame, total_visitors: float) -> list:
    if SEGMENT not in df.columns or df.empty:
        return []
    grouped = df.groupby(_labels(df, SEGMENT), sort=False)[VISITORS].agg(["count", "sum"])
    rows = [
        {
            "name": name,
            "visitors": int(row["sum"]),
            "avgVisitors": int(round(row["sum"] / row["count"])),
            "visitorPercent": _pct(row["sum"], total_visitors, 1),
        }
        for name, row in grouped.iterrows()
    ]
    rows.sort(key=lambda r: r["visitorPercent"], reverse=True)
    return rows[:TOP_N]


def destination_names(df: pd.DataFrame) -> pd.Series:
    names = pd.Series([None] * len(df), index=df.index, dtype=object)
    for column in reversed(NAME_COLUMNS):
        if column in df.columns:
            present = df[column].notna() & (df[column].astype(str).str.strip() != "")
            names = names.where(~present, df[column].astype(str))
    return names


def top_destinations(df: pd.DataFrame, total_visitors: float) -> list:
    if df.empty:
        return []
    table = pd.DataFrame({
        "name": destination_names(df),
        "visitors": df[VISITORS],
        "type": df[CUSTOMER_TYPE] if CUSTOMER_TYPE in df.columns else None,
    })
    table = table[table["name"].notna() & (table["visitors"] > 0)]
    table = table.sort_values("visitors", ascending=False, kind="stable").head(TOP_N)
    return [
        {
            "name": row["name"],
            "visitors": int(row["visitors"]),
            "visitorPercent": _pct(row["visitors"], total_visitors, 1),
            "type": row["type"] if pd.notna(row["type"]) else None,
        }
        for _, row in table.iterrows()
    ]


def region_by_customer_type(df: pd.DataFrame) -> list:
    """Customer-type rows with a count per region; types without any cell >= 2 are dropped."""
    if REGION not in df.columns or CUSTOMER_TYPE not in df.columns or df.empty:
        return []
    table = pd.crosstab(_labels(df, CUSTOMER_TYPE), _labels(df, REGION))
    table = table[(table >= 2).any(axis=1)]
    result = []
    for type_name, counts in table.iterrows():
        item = {"name": type_name}
        item.update({region: int(v) for region, v in counts.items()})
        result.append(item)
    return result


def _score(value):
    number = pd.to_numeric(str(value).replace(",", "."), errors="coerce")
    return None if pd.isna(number) else float(number)


def score_distribution(df: pd.DataFrame) -> list:
    if df.empty:
        return []

    def get(row, col):
        if col not in row or pd.isna(row[col]):
            return None
        value = row[col]
        return value.item() if hasattr(value, "item") else value

    return [
        {
            "id": get(row, "MusteriKodu"),
            "name": get(row, "MusteriTabelaAdi"),
            "profileScore": _score(get(row, "MapProfileScore")),
            "populationScore": _score(get(row, "MapPopulationScore")),
            "visitors": int(row[VISITORS]),
            "segment": get(row, SEGMENT),
            "channel": get(row, CHANNEL),
        }
        for _, row in df.iterrows()
    ]


def summary_stats(df: pd.DataFrame) -> dict:
    total_rows = len(df)
    total_visitors = float(df[VISITORS].sum()) if total_rows else 0.0
    stats = {
        "total_rows": total_rows,
        "total_visitors": int(total_visitors),
        "avg_visitors": round(total_visitors / total_rows, 2) if total_rows else 0.0,
    }

    # Share of destinations per region
    stats["region_share"] = [
        {"name": item["name"], "percent": round(item["percent"], 1)}
        for item in count_distribution(df, REGION)
    ]

    by_type = visitor_distribution(df, CUSTOMER_TYPE, total_visitors)
    stats["top_type"] = by_type[0] if by_type else None
    return stats


def process_data(rows) -> dict:
    """Process a location's rows into dashboard-ready aggregates."""
    df = to_frame(rows)
    stats = summary_stats(df)
    total_visitors = stats["total_visitors"]

    return {
        "stats": stats,
        "channels": count_distribution(df, CHANNEL),
        "customer_types": count_distribution(df, CUSTOMER_TYPE),
        "segments": count_distribution(df, SEGMENT),
        "visitor_segments": visitors_by_segment(df, total_visitors),
        "top_destinations": top_destinations(df, total_visitors),
        "visitors_by_type": visitor_distribution(df, CUSTOMER_TYPE, total_visitors),
        "visitors_by_region": visitor_distribution(df, SUB_REGION, total_visitors),
        "region_customer_types": region_by_customer_type(df),
        "scores": score_distribution(df),
    }
