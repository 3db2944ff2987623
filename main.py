"""Main entry point: analyze time series from a CSV file."""

import sys
import pandas as pd
from pathlib import Path
from typing import List, Optional

from insight_engine.analytics import AnalyticsEngine, DataPoint, DataSeries

DATE_COLUMNS = ("date", "timestamp")


def load_series(df: pd.DataFrame, series_name: Optional[str] = None) -> List[DataSeries]:
    """
    Build one series per numeric column of a frame with a date column.

    Args:
        df: Frame with a `date` (or `timestamp`) column and numeric value columns
        series_name: Name for the series when there is a single value column

    Returns:
        Series sorted by timestamp

    Raises:
        ValueError: If the date column or the value columns are missing
    """
    date_column = next((c for c in df.columns if str(c).lower() in DATE_COLUMNS), None)
    if date_column is None:
        raise ValueError(f"CSV needs one of the columns: {', '.join(DATE_COLUMNS)}")

    df = df.copy()
    df[date_column] = pd.to_datetime(df[date_column])
    df = df.sort_values(date_column, kind="stable")
    value_columns = [
        c for c in df.columns
        if c != date_column and pd.api.types.is_numeric_dtype(df[c])
    ]
    if not value_columns:
        raise ValueError("CSV has no numeric value column")

    series = []
    for column in value_columns:
        name = series_name if series_name and len(value_columns) == 1 else str(column)
        series.append(DataSeries(
            id=name,
            name=name,
            data=[
                DataPoint(
                    timestamp=timestamp.to_pydatetime(),
                    value=None if pd.isna(value) else float(value)
                )
                for timestamp, value in zip(df[date_column], df[column])
            ]
        ))
    return series


def run_analysis(file_path: str, series_name: str = None):
    """
    Run the full analysis on a CSV file.

    Args:
        file_path: Path to CSV file
        series_name: Name for the series (optional, defaults to the column name)
    """
    print(f"\n{'='*80}")
    print("INSIGHT ENGINE")
    print(f"{'='*80}\n")

    file_path = Path(file_path)
    if not file_path.exists():
        print(f"❌ File not found: {file_path}")
        return None
    if file_path.suffix.lower() != ".csv":
        print(f"❌ Unsupported file type: {file_path.suffix}")
        print("   Supported formats: .csv")
        return None

    print(f"Loading data from: {file_path}")
    try:
        series = load_series(pd.read_csv(file_path), series_name)
    except ValueError as e:
        print(f"❌ {e}")
        return None

    for s in series:
        print(f"Series: {s.name} ({len(s.data):,} points)")

    result = AnalyticsEngine().analyze(series)

    print(f"\n{'='*80}")
    print("ANALYSIS COMPLETE")
    print(f"{'='*80}\n")
    print(f"✅ Anomalies: {len(result.anomalies)}")
    print(f"✅ Predictions: {len(result.predictions)}")
    print(f"✅ Correlations: {len(result.correlations)}")
    print(f"✅ Insights: {len(result.insights)}")
    for failure in result.failures:
        print(f"⚠️  {failure.series_id}: {failure.message}")

    if result.insights:
        print(f"\n📊 Insights:\n")
        for idx, insight in enumerate(result.insights, 1):
            print(f"{idx}. [{insight.priority.value.upper()}] {insight.title}")
            print(f"   {insight.description[:150]}")
            print()

    if result.summary and result.summary.recommendations:
        print("💡 Recommendations:")
        for recommendation in result.summary.recommendations:
            print(f"   - {recommendation}")

    return result


def main():
    """Main entry point."""
    if len(sys.argv) < 2:
        print("Usage: python main.py <file_path> [series_name]")
        print("\nSupported formats: CSV (.csv) with a date column and numeric value columns")
        print("\nExamples:")
        print("  python main.py data/revenue.csv")
        print("  python main.py data/stock.csv stock_level")
        sys.exit(1)

    file_path = sys.argv[1]
    series_name = sys.argv[2] if len(sys.argv) > 2 else None

    run_analysis(file_path, series_name)


if __name__ == "__main__":
    main()
