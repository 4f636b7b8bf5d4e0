from __future__ import annotations

from app.models import ProcessedData
from app.services.analysis import analyze_dataset
from app.services.profiling import build_dataset_summary
from app.services.query_engine import try_compute_answer


def _ds() -> ProcessedData:
    cols = {
        "date": ["2024-01-01", "2024-01-01", "2024-02-01", "2024-02-01", "2024-03-01"],
        "customer": ["A", "B", "A", "C", "A"],
        "revenue": [10, 5, 20, 2, 40],
        "age": [20, 30, 20, 40, 20],
    }
    headers = list(cols)
    rows = [{h: cols[h][i] for h in headers} for i in range(5)]
    return ProcessedData(headers=headers, rows=rows, summary=build_dataset_summary(headers, rows))


def test_row_count():
    res = try_compute_answer(_ds(), "How many rows are there?")
    assert res is not None
    assert res.message == "Your dataset has 5 rows of data."
    assert res.source == "computed"


def test_columns():
    res = try_compute_answer(_ds(), "what columns do I have")
    assert res.message == "Your dataset has 4 columns: date, customer, revenue, age."


def test_histogram_chart():
    res = try_compute_answer(_ds(), "plot the distribution of revenue")
    assert res.visualization is not None
    assert res.visualization.type == "histogram"
    assert len(res.visualization.data) == 10
    assert sum(b["count"] for b in res.visualization.data) == 5


def test_categorical_chart_pie_and_bar():
    pie = try_compute_answer(_ds(), "show customer as a pie").visualization
    assert pie.type == "pie"
    assert pie.data[0] == {"category": "A", "count": 3}
    bar = try_compute_answer(_ds(), "show customer").visualization
    assert bar.type == "bar"
    assert bar.data[0] == {"category": "A", "value": 3}


def test_default_numeric_chart_is_scatter_against_other_numeric():
    viz = try_compute_answer(_ds(), "visualize revenue").visualization
    assert viz.type == "scatter"
    assert viz.y_axis == "age"
    assert viz.data[0] == {"id": 0, "x": 10.0, "y": 20.0}


def test_date_chart_by_year():
    viz = try_compute_answer(_ds(), "show date").visualization
    assert viz.data == [{"category": "2024", "value": 5}]


def test_scalar_mean():
    res = try_compute_answer(_ds(), "what is the average age?")
    assert res.message == "The average age is 26.00."


def test_count_named_category():
    res = try_compute_answer(_ds(), "how many orders did customer a place")
    assert res.message == 'There are 3 records where customer is "A".'


def test_count_per_category():
    res = try_compute_answer(_ds(), "count by customer")
    assert res.message.startswith("Here's the count for each customer category:")
    assert "- A: 3" in res.message


def test_strongest_correlation():
    res = try_compute_answer(_ds(), "is anything correlated?")
    assert res.visualization.type == "scatter"
    assert "revenue" in res.message and "age" in res.message


def test_insight_for_column_and_with_analysis():
    res = try_compute_answer(_ds(), "tell me about revenue")
    assert "The average value is 15.40." in res.message
    assert "The highest value is 40.00." in res.message

    ds = _ds()
    analysis = analyze_dataset(ds, "revenue")
    res = try_compute_answer(ds, "any insights?", analysis)
    assert "Your dataset contains 5 records and 4 variables." in res.message
    assert "Key findings for revenue" in res.message


def test_unknown_question_returns_none():
    assert try_compute_answer(_ds(), "tell me something poetic") is None
    assert try_compute_answer(_ds(), "   ") is None


def _single_numeric() -> ProcessedData:
    headers = ["shop", "revenue", "opened"]
    rows = [
        {"shop": "A", "revenue": 10, "opened": "2024-13-45"},
        {"shop": "B", "revenue": 20, "opened": "2024-99-99"},
    ]
    return ProcessedData(headers=headers, rows=rows, summary=build_dataset_summary(headers, rows))


def test_lone_numeric_column_gets_text_reply():
    res = try_compute_answer(_single_numeric(), "visualize revenue")
    assert res.visualization is None
    assert "only numeric column" in res.message


def test_unparseable_dates_get_text_reply():
    ds = _single_numeric()
    assert ds.summary.date_columns == ["opened"]
    res = try_compute_answer(ds, "show opened")
    assert res.visualization is None
    assert res.message == "I couldn't find any valid dates in opened to plot."
