# safety_taxonomy.py
"""
Static inspection taxonomy for the weekly safety report
Sites, categories and subcategories are fixed configuration data
"""

from typing import Dict

SITES = [
    '현장 A', '현장 B', '현장 C', '현장 D', '현장 E',
    '현장 F', '현장 G', '현장 H', '현장 I', '현장 J', '현장 K'
]

# Every subcategory leaf carries these three free-text fields
LEAF_FIELDS = ('plan', 'performance', 'status')

FIELD_LABELS = {
    'plan': '계획',
    'performance': '실적',
    'status': '현황',
}

FIELD_PLACEHOLDERS = {
    'plan': '금주 계획',
    'performance': '금주 실적',
    'status': '이행 현황 (또는 차주 계획)',
}

CATEGORIES = [
    {
        'id': 'riskAssessment',
        'name': '위험성평가',
        'subCategories': [
            {'id': 'ra_weekly', 'name': '1.1 주간 위험성평가 실시'},
            {'id': 'ra_measures', 'name': '1.2 위험성감소대책 이행'},
            {'id': 'ra_participation', 'name': '1.3 근로자 참여'},
        ]
    },
    {
        'id': 'tbm',
        'name': 'TBM (Tool Box Meeting)',
        'subCategories': [
            {'id': 'tbm_inspection', 'name': '2.1 작업전 안전점검'},
            {'id': 'tbm_nearmiss', 'name': '2.2 안전제안/아차사고'},
        ]
    },
    {
        'id': 'training',
        'name': '안전보건교육',
        'subCategories': [
            {'id': 'tr_new', 'name': '3.1 신규채용자교육'},
            {'id': 'tr_change', 'name': '3.2 작업내용 변경교육'},
            {'id': 'tr_special', 'name': '3.3 특별안전교육'},
            {'id': 'tr_regular_worker', 'name': '3.4 정기안전교육(근로자)'},
            {'id': 'tr_regular_manager', 'name': '3.5 정기안전교육(관리감독자)'},
        ]
    },
    {
        'id': 'inspection',
        'name': '안전점검',
        'subCategories': [
            {'id': 'insp_joint', 'name': '4.1 합동안전점검'},
            {'id': 'insp_owner', 'name': '4.2 사업주 순회점검'},
            {'id': 'insp_manager', 'name': '4.3 관리감독자 순회점검'},
            {'id': 'insp_safety', 'name': '4.4 안전관리자 순회점검'},
            {'id': 'insp_followup', 'name': '4.5 점검 후속조치(지적사항)'},
        ]
    },
    {
        'id': 'contractor',
        'name': '도급/협력사 관리',
        'subCategories': [
            {'id': 'cont_council', 'name': '5.1 안전보건협의체'},
            {'id': 'cont_ptw', 'name': '5.2 위험작업허가(PTW)'},
            {'id': 'cont_plan', 'name': '5.3 작업계획수립'},
        ]
    },
    {
        'id': 'emergency',
        'name': '비상대응',
        'subCategories': [
            {'id': 'em_check', 'name': '6.1 비상자재 재고 점검'},
            {'id': 'em_drill', 'name': '6.2 비상대응훈련'},
        ]
    },
]


def empty_leaf() -> Dict[str, str]:
    return {field: '' for field in LEAF_FIELDS}


def empty_categories() -> Dict[str, Dict[str, Dict[str, str]]]:
    """Build the fully populated categories mapping with every leaf empty"""
    return {
        cat['id']: {sub['id']: empty_leaf() for sub in cat['subCategories']}
        for cat in CATEGORIES
    }


def iter_leaves():
    """Yield (category, subcategory) pairs in display order"""
    for cat in CATEGORIES:
        for sub in cat['subCategories']:
            yield cat, sub


def conform_categories(categories) -> Dict[str, Dict[str, Dict[str, str]]]:
    """
    Shape an arbitrary categories mapping to exactly the taxonomy:
    missing leaves and fields become empty strings, unknown keys are dropped.
    """
    categories = categories or {}
    shaped = empty_categories()
    for cat_id, subcats in shaped.items():
        source_cat = categories.get(cat_id) or {}
        for sub_id, leaf in subcats.items():
            source_leaf = source_cat.get(sub_id) or {}
            for field in LEAF_FIELDS:
                value = source_leaf.get(field)
                leaf[field] = '' if value is None else str(value)
    return shaped
