"""Seed sample reference options (boards → grades → subjects, cities → areas, flat types)."""
from sqlalchemy.orm import Session
from app.models.reference_option import ReferenceOption
from app.services.option_types import OptionKind, derive_value, scope_key

# Board -> {grade: [subjects]}
CURRICULUM = {
    "CBSE": {"Grade 9": ["Mathematics", "Science"], "Grade 10": ["Mathematics", "Science", "English"]},
    "ICSE": {"Class 9": ["Mathematics", "Physics"], "Class 10": ["Mathematics", "Chemistry"]},
}

# City -> (whatsapp community link, areas)
CITIES = {
    "Bhopal": ("", ["MP Nagar", "Arera Colony"]),
    "Indore": ("", ["Vijay Nagar", "Palasia"]),
}

FLAT = {
    OptionKind.MODE: ["Online", "Offline", "Hybrid"],
    OptionKind.GENDER: ["Male", "Female", "Other"],
}


def _option(type_tag: str, label: str, sort_order: int, meta=None) -> ReferenceOption:
    return ReferenceOption(
        type=type_tag,
        label=label,
        value=derive_value(label),
        sort_order=sort_order,
        meta=meta,
    )


def seed_reference_options(db: Session) -> None:
    if db.query(ReferenceOption).count() > 0:
        return
    for b, (board, grades) in enumerate(CURRICULUM.items(), start=1):
        board_opt = _option(OptionKind.BOARD.value, board, b)
        db.add(board_opt)
        for g, (grade, subjects) in enumerate(grades.items(), start=1):
            grade_opt = _option(OptionKind.GRADE.value, grade, g)
            board_opt.children.append(grade_opt)
            for s, subject in enumerate(subjects, start=1):
                grade_opt.children.append(_option(OptionKind.SUBJECT.value, subject, s))
    for c, (city, (link, areas)) in enumerate(CITIES.items(), start=1):
        city_opt = _option(OptionKind.CITY.value, city, c, meta={"whatsappLink": link} if link else {})
        db.add(city_opt)
        for a, area in enumerate(areas, start=1):
            city_opt.children.append(_option(scope_key(OptionKind.AREA, city_opt.value), area, a))
    for kind, labels in FLAT.items():
        for i, label in enumerate(labels, start=1):
            db.add(_option(kind.value, label, i))
    db.commit()
