def _seed(store):
    store.insert_workout_log(20, 20, 180, completed_at=100.0, alarm_name="Morning Boost", user_id="u1")
    store.insert_workout_log(15, 15, 120, completed_at=200.0, user_id="u1")
    store.insert_workout_log(25, 18, 300, completed_at=300.0, user_id="u2", session_id="s3")


def test_logs_are_newest_first(tmp_db):
    _seed(tmp_db)
    logs = tmp_db.get_workout_logs()
    assert [log.completed_at for log in logs] == [300.0, 200.0, 100.0]
    assert logs[0].session_id == "s3"
    assert logs[2].alarm_name == "Morning Boost"


def test_filter_and_limit(tmp_db):
    _seed(tmp_db)
    assert len(tmp_db.get_workout_logs(user_id="u1")) == 2
    assert [log.target_pushups for log in tmp_db.get_workout_logs(limit=1)] == [25]
    assert tmp_db.get_workout_logs(user_id="nobody") == []


def test_stats(tmp_db):
    _seed(tmp_db)
    stats = tmp_db.calculate_workout_stats(tmp_db.get_workout_logs())
    assert stats == {
        "total_pushups": 53,
        "completed_alarms": 2,
        "success_rate": 67,
        "total_workouts": 3,
    }


def test_stats_empty(tmp_db):
    assert tmp_db.calculate_workout_stats([]) == {
        "total_pushups": 0,
        "completed_alarms": 0,
        "success_rate": 0,
        "total_workouts": 0,
    }


def test_insert_returns_row_id(tmp_db):
    first = tmp_db.insert_workout_log(10, 10, 60, completed_at=1.0)
    second = tmp_db.insert_workout_log(10, 4, 60, completed_at=2.0)
    assert second == first + 1
