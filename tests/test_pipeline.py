"""Tests for the detect-and-classify service."""

from __future__ import annotations

import threading

import pytest
from PIL import Image

from conftest import (
    FakeClassifier,
    FakeDetector,
    FakeFrameSource,
    classification,
    detection,
)
from core.errors import (
    ConfigurationError,
    PipelineCancelledError,
    PipelineStageError,
    UnimplementedError,
)
from vision.pipeline import DetectClassifyService
from vision.providers import CancellationToken
from vision.registry import ProviderRegistry
from vision.settings import ClassifierSettings, PipelineSettings


def _settings(**overrides) -> PipelineSettings:
    values = {
        "detector": "faces",
        "detector_confidence": 0.65,
        "classifiers": (ClassifierSettings(name="age"), ClassifierSettings(name="gender")),
        "camera": "cam",
        "max_detections": 3,
        "detector_labels": ("face",),
        "padding": 2,
        "max_classifications": 0,
    }
    values.update(overrides)
    return PipelineSettings(**values)


def _registry(detector, age=None, gender=None, source=None) -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register_detector("faces", detector)
    registry.register_classifier("age", age or FakeClassifier([classification("adult", 0.95)]))
    registry.register_classifier("gender", gender or FakeClassifier([classification("female", 0.60)]))
    registry.register_frame_source("cam", source or FakeFrameSource())
    return registry


def test_scenario_two_faces_are_classified_by_both_classifiers(gradient_image) -> None:
    detector = FakeDetector(
        [
            detection("face", 0.9, box=(0, 0, 10, 10)),
            detection("face", 0.8, box=(20, 20, 30, 30)),
            detection("dog", 0.7),
            detection("face", 0.6),
            detection("cat", 0.5),
        ]
    )
    age = FakeClassifier([classification("adult", 0.95)])
    gender = FakeClassifier([classification("female", 0.60)])
    service = DetectClassifyService.from_settings(_settings(), _registry(detector, age, gender))

    result = service.classifications(gradient_image)

    assert len(age.calls) == 2
    assert len(gender.calls) == 2
    assert [call["image"].size for call in age.calls] == [(14, 14), (14, 14)]
    assert [item.score for item in result] == [0.95, 0.95, 0.60, 0.60]


def test_max_classifications_caps_merged_result(gradient_image) -> None:
    detector = FakeDetector([detection("face", 0.9)])
    service = DetectClassifyService.from_settings(
        _settings(max_classifications=1),
        _registry(detector),
    )

    result = service.classifications(gradient_image)

    assert result == [classification("adult", 0.95)]


def test_crops_follow_ranked_order_and_use_padding(gradient_image) -> None:
    detector = FakeDetector(
        [
            detection("face", 0.7, box=(30, 30, 34, 34)),
            detection("face", 0.9, box=(4, 4, 8, 8)),
        ]
    )
    age = FakeClassifier([classification("adult", 0.5)])
    service = DetectClassifyService.from_settings(_settings(), _registry(detector, age=age))

    service.classifications(gradient_image)

    first_crop = age.calls[0]["image"]
    second_crop = age.calls[1]["image"]
    assert first_crop.getpixel((0, 0)) == gradient_image.getpixel((2, 2))
    assert second_crop.getpixel((0, 0)) == gradient_image.getpixel((28, 28))


def test_classifier_count_and_attributes_are_forwarded(gradient_image) -> None:
    detector = FakeDetector([detection("face", 0.9)])
    age = FakeClassifier([classification("adult", 0.9), classification("child", 0.1)])
    settings = _settings(
        classifiers=(ClassifierSettings(name="age", count=2, attributes={"model": "v2"}),),
    )
    service = DetectClassifyService.from_settings(settings, _registry(detector, age=age))

    result = service.classifications(gradient_image)

    assert age.calls[0]["n"] == 2
    assert age.calls[0]["extra"] == {"model": "v2"}
    assert [item.label for item in result] == ["adult", "child"]


def test_no_surviving_detections_returns_empty(gradient_image) -> None:
    age = FakeClassifier([classification("adult", 0.9)])
    detector = FakeDetector([detection("dog", 0.99)])
    service = DetectClassifyService.from_settings(_settings(), _registry(detector, age=age))

    assert service.classifications(gradient_image) == []
    assert age.calls == []


def test_detector_failure_is_reported_with_stage(gradient_image) -> None:
    detector = FakeDetector(error=ConnectionError("backend down"))
    service = DetectClassifyService.from_settings(_settings(), _registry(detector))

    with pytest.raises(PipelineStageError) as excinfo:
        service.classifications(gradient_image)

    assert excinfo.value.stage == "detect"
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_classifier_failure_aborts_without_partial_result(gradient_image) -> None:
    detector = FakeDetector([detection("face", 0.9), detection("face", 0.8)])
    age = FakeClassifier([classification("adult", 0.9)])
    gender = FakeClassifier(error=TimeoutError("slow"))
    service = DetectClassifyService.from_settings(_settings(), _registry(detector, age, gender))

    with pytest.raises(PipelineStageError) as excinfo:
        service.classifications(gradient_image)

    assert excinfo.value.stage == "classify"
    assert len(age.calls) == 1


def test_degenerate_crop_fails_the_invocation(gradient_image) -> None:
    detector = FakeDetector([detection("face", 0.9, box=(10, 10, 12, 12))])
    age = FakeClassifier([classification("adult", 0.9)])
    service = DetectClassifyService.from_settings(
        _settings(padding=-2),
        _registry(detector, age=age),
    )

    with pytest.raises(PipelineStageError) as excinfo:
        service.classifications(gradient_image)

    assert excinfo.value.stage == "crop"
    assert age.calls == []


def test_image_logging_persists_each_crop(tmp_path, gradient_image) -> None:
    detector = FakeDetector(
        [
            detection("face", 0.9, box=(0, 0, 10, 10)),
            detection("face", 0.8, box=(30, 20, 50, 40)),
        ]
    )
    service = DetectClassifyService.from_settings(
        _settings(log_image=True, image_path=str(tmp_path / "crops")),
        _registry(detector),
    )

    service.classifications(gradient_image)
    service.classifications(gradient_image)

    assert len(list((tmp_path / "crops").glob("*.jpg"))) == 2


def test_image_logging_failure_is_reported(tmp_path, gradient_image) -> None:
    blocker = tmp_path / "crops"
    blocker.write_text("file", encoding="utf-8")
    detector = FakeDetector([detection("face", 0.9)])
    service = DetectClassifyService.from_settings(
        _settings(log_image=True, image_path=str(blocker)),
        _registry(detector),
    )

    with pytest.raises(PipelineStageError) as excinfo:
        service.classifications(gradient_image)

    assert excinfo.value.stage == "log"


def test_cancelled_token_stops_before_classifiers(gradient_image) -> None:
    token = CancellationToken()

    class CancellingDetector(FakeDetector):
        def detections(self, image, extra=None, *, cancel=None):
            result = super().detections(image, extra, cancel=cancel)
            token.cancel()
            return result

    detector = CancellingDetector([detection("face", 0.9)])
    age = FakeClassifier([classification("adult", 0.9)])
    service = DetectClassifyService.from_settings(_settings(), _registry(detector, age=age))

    with pytest.raises(PipelineCancelledError):
        service.classifications(gradient_image, cancel=token)

    assert detector.calls[0]["cancel"] is token
    assert age.calls == []


def test_cancellation_raised_by_collaborator_is_not_wrapped(gradient_image) -> None:
    detector = FakeDetector(error=PipelineCancelledError("shutdown"))
    service = DetectClassifyService.from_settings(_settings(), _registry(detector))

    with pytest.raises(PipelineCancelledError):
        service.classifications(gradient_image)


def test_classifications_from_camera_releases_frame(gradient_image) -> None:
    source = FakeFrameSource(gradient_image)
    detector = FakeDetector([detection("face", 0.9)])
    service = DetectClassifyService.from_settings(_settings(), _registry(detector, source=source))

    result = service.classifications_from_camera("cam")

    assert detector.calls[0]["image"] is gradient_image
    assert source.released == 1
    assert result[0].label == "adult"


def test_frame_is_released_when_pipeline_fails(gradient_image) -> None:
    source = FakeFrameSource(gradient_image)
    detector = FakeDetector(error=RuntimeError("boom"))
    service = DetectClassifyService.from_settings(_settings(), _registry(detector, source=source))

    with pytest.raises(PipelineStageError):
        service.classifications_from_camera()

    assert source.released == 1


def test_camera_failure_is_a_capture_stage_error() -> None:
    source = FakeFrameSource(error=OSError("no frame"))
    service = DetectClassifyService.from_settings(
        _settings(),
        _registry(FakeDetector(), source=source),
    )

    with pytest.raises(PipelineStageError) as excinfo:
        service.classifications_from_camera()

    assert excinfo.value.stage == "capture"
    assert source.released == 0


def test_from_camera_without_camera_is_configuration_error() -> None:
    registry = _registry(FakeDetector())
    service = DetectClassifyService.from_settings(_settings(camera=None), registry)

    with pytest.raises(ConfigurationError):
        service.classifications_from_camera()


def test_unconfigured_service_raises(gradient_image) -> None:
    with pytest.raises(ConfigurationError):
        DetectClassifyService().classifications(gradient_image)


def test_unsupported_queries_signal_unimplemented(gradient_image) -> None:
    service = DetectClassifyService.from_settings(_settings(), _registry(FakeDetector()))

    with pytest.raises(UnimplementedError):
        service.detections(gradient_image)
    with pytest.raises(UnimplementedError):
        service.detections_from_camera("cam")
    with pytest.raises(UnimplementedError):
        service.get_object_point_clouds("cam")
    with pytest.raises(NotImplementedError):
        service.do_command({"command": "status"})


def test_failed_reconfigure_keeps_previous_snapshot(gradient_image) -> None:
    detector = FakeDetector([detection("face", 0.9)])
    service = DetectClassifyService.from_settings(_settings(), _registry(detector))
    before = service.snapshot()

    with pytest.raises(ConfigurationError):
        service.reconfigure(_settings(detector="unknown"), _registry(detector))

    assert service.snapshot() is before
    assert service.classifications(gradient_image)


def test_in_flight_invocation_uses_snapshot_from_its_start(gradient_image) -> None:
    entered = threading.Event()
    resume = threading.Event()

    class BlockingClassifier(FakeClassifier):
        def classifications(self, image, n, extra=None, *, cancel=None):
            entered.set()
            resume.wait(timeout=5)
            return super().classifications(image, n, extra, cancel=cancel)

    detector = FakeDetector([detection("face", 0.9), detection("face", 0.8)])
    blocking = BlockingClassifier([classification("adult", 0.9)])
    service = DetectClassifyService.from_settings(
        _settings(classifiers=(ClassifierSettings(name="age"),), max_classifications=0),
        _registry(detector, age=blocking),
    )
    results: list = []
    worker = threading.Thread(target=lambda: results.append(service.classifications(gradient_image)))
    worker.start()
    assert entered.wait(timeout=5)

    service.reconfigure(_settings(max_classifications=1), _registry(detector))
    resume.set()
    worker.join(timeout=5)

    assert len(results[0]) == 2
    assert service.snapshot().settings.max_classifications == 1


def test_close_closes_camera() -> None:
    source = FakeFrameSource()
    service = DetectClassifyService.from_settings(_settings(), _registry(FakeDetector(), source=source))

    service.close()

    assert source.closed is True


def test_rgba_images_are_supported() -> None:
    image = Image.new("RGBA", (40, 40), (1, 2, 3, 255))
    detector = FakeDetector([detection("face", 0.9, box=(0, 0, 5, 5))])
    age = FakeClassifier([classification("adult", 0.9)])
    service = DetectClassifyService.from_settings(_settings(), _registry(detector, age=age))

    service.classifications(image)

    crop = age.calls[0]["image"]
    assert crop.mode == "RGBA"
    assert crop.getpixel((0, 0)) == (0, 0, 0, 0)
    assert crop.getpixel((2, 2)) == (1, 2, 3, 255)
