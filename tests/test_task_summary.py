import json


TASKS = [
    {"title": "a", "status": "open"},
    {"title": "b", "status": "completed"},
    {"title": "c", "status": "open"},
    {"title": "d", "status": "pending"},
]


class _ListingStore:
    def __init__(self, documents):
        self.documents = documents
        self.queries = []

    def list_documents(self, queries):
        self.queries.append(list(queries))
        return {"documents": self.documents, "total": len(self.documents)}


def test_classify_shapes(load_lambda):
    ts = load_lambda("task_summary")
    assert ts.classify(None) == ts.SHAPE_MISSING
    assert ts.classify(json.dumps(TASKS)) == ts.SHAPE_RAW_STRING
    assert ts.classify(TASKS) == ts.SHAPE_ARRAY_OF_OBJECTS
    assert ts.classify([json.dumps(t) for t in TASKS]) == ts.SHAPE_ARRAY_OF_STRINGS
    assert ts.classify([]) == ts.SHAPE_ARRAY_OF_STRINGS
    assert ts.classify(7) == ts.SHAPE_UNSUPPORTED


def test_every_stored_shape_counts_the_same(load_lambda):
    ts = load_lambda("task_summary")
    shapes = [
        json.dumps(TASKS),
        TASKS,
        [json.dumps(t) for t in TASKS],
    ]

    summaries = [ts.tally([{"id": "x", "tasksAssigned": shape}])[0] for shape in shapes]

    assert summaries[0] == summaries[1] == summaries[2]
    assert summaries[0]["open"] == 2
    assert summaries[0]["completed"] == 1
    assert summaries[0]["pending"] == 1
    assert summaries[0]["todo"] == 0
    assert summaries[0]["total"] == 4


def test_tally_skips_bad_tasks_without_failing(load_lambda):
    ts = load_lambda("task_summary")
    documents = [
        {"id": "1", "tasksAssigned": ['{"title":"a","status":"open"}', "{broken", '{"title":"b","status":"finished"}']},
        {"id": "2", "tasksAssigned": "not json at all"},
        {"id": "3", "tasksAssigned": '{"title":"not","status":"a list"}'},
        {"id": "4"},
        {"id": "5", "tasksAssigned": [{"title": "w", "status": "working"}, '{"title":"d","status":"deferred"}', 3]},
    ]

    summary, skipped = ts.tally(documents)

    assert summary["open"] == 1
    assert summary["working"] == 1
    assert summary["deferred"] == 1
    assert summary["total"] == 3
    assert summary["total"] == sum(summary[s] for s in ("open", "completed", "todo", "working", "deferred", "pending"))
    assert skipped == {ts.SKIPPED_UNDECODABLE: 4, ts.SKIPPED_INVALID_STATUS: 1}


def test_empty_summary_has_every_status(load_lambda):
    ts = load_lambda("task_summary")
    assert ts.empty_summary() == {
        "open": 0,
        "completed": 0,
        "todo": 0,
        "working": 0,
        "deferred": 0,
        "pending": 0,
        "total": 0,
    }


def test_aggregator_reads_whole_collection_and_records_skips(load_lambda):
    ts = load_lambda("task_summary")
    store = _ListingStore([{"id": "1", "tasksAssigned": ["{broken", '{"title":"a","status":"todo"}']}])
    agg = ts.TaskSummaryAggregator(store)

    out = agg.summarize()

    assert store.queries == [[]]
    assert out.to_envelope()["summary"]["todo"] == 1
    assert out.to_envelope()["summary"]["total"] == 1
    assert agg.last_skipped[ts.SKIPPED_UNDECODABLE] == 1


def test_aggregator_surfaces_store_failures(load_lambda):
    results = load_lambda("results")
    ts = load_lambda("task_summary")

    class DownStore:
        def list_documents(self, queries):
            raise results.StoreError("scan failed: boom")

    out = ts.TaskSummaryAggregator(DownStore()).summarize()

    assert not out.ok
    assert out.error_kind == "StoreError"
    assert out.status_code() == 502
