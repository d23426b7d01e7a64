from module_1_obstruction_detection.app.models import Category
from module_1_obstruction_detection.app.services.normalizer import DetectionNormalizer


def test_normalizer_maps_records_and_metadata() -> None:
    payload = {
        "detections": [
            {"bbox": [50, 80, 200, 180], "confidence": 0.92, "class_id": 0, "class_name": "Animal"},
            {"bbox": [10, 10, 40, 90], "confidence": 0.81, "class_id": 3, "class_name": "Walking PERSON"},
            {"bbox": [5, 5, 15, 15], "confidence": 0.4, "class_id": 7, "class_name": "rock"},
        ],
        "image_size": [350, 300],
        "processing_time": 0.12,
        "model_info": {"name": "yolo-field"},
        "annotated_image": "aGVsbG8=",
    }

    response = DetectionNormalizer().normalize(payload)

    assert [item.category for item in response.detections] == [
        Category.ANIMAL,
        Category.PERSON,
        Category.OBJECT,
    ]
    assert response.detections[0].bbox == (50.0, 80.0, 200.0, 180.0)
    assert response.image_size == (350, 300)
    assert response.processing_time == 0.12
    assert response.model_info == {"name": "yolo-field"}
    assert response.annotated_image == "aGVsbG8="


def test_normalizer_treats_missing_detections_as_empty() -> None:
    normalizer = DetectionNormalizer()

    assert normalizer.normalize({"image_size": [10, 10]}).detections == ()
    assert normalizer.normalize({"detections": None}).detections == ()
    assert normalizer.normalize({}).annotated_image is None


def test_normalizer_passes_confidence_through_unclamped() -> None:
    payload = {"detections": [{"bbox": [0, 0, 1, 1], "confidence": 1.7, "class_id": 1, "class_name": "person"}]}

    detection = DetectionNormalizer().normalize(payload).detections[0]

    assert detection.confidence == 1.7


def test_normalizer_skips_non_mapping_records_and_fills_defaults() -> None:
    payload = {"detections": ["garbage", {"bbox": [1, 2, 3, 4], "confidence": "0.5"}]}

    detections = DetectionNormalizer().normalize(payload).detections

    assert len(detections) == 1
    assert detections[0].class_name == "unknown"
    assert detections[0].class_id == -1
    assert detections[0].confidence == 0.5
    assert detections[0].category == Category.OBJECT
