"""
Built-in reference cases.

Curated, de-identified teaching cases modelled on public oncology imaging
archives (ISIC, TCIA, NIH). Used when no registry file is configured.
"""

REFERENCE_CASES = [
    {
        "id": "ISIC-MEL-0417",
        "title": "Evolving pigmented lesion on the upper back",
        "age": 58,
        "gender": "Female",
        "symptoms": ["irregular mole", "changing pigmentation", "asymmetric lesion", "bleeding mole"],
        "diagnosis": "Melanoma",
        "outcome": "Wide local excision with sentinel node biopsy; node negative, disease-free at 3 years.",
        "summary": "Patient noticed a mole that had grown and darkened over six months.",
        "visual_findings": "Asymmetric pigmented mole with irregular, notched borders, multiple shades "
                           "of brown and black, diameter above 6 mm and focal regression.",
        "databaseSource": "ISIC Archive (International Skin Imaging Collaboration)",
        "verifiedBy": "Dermatopathology Review Board",
        "sourceUrl": "https://www.isic-archive.com/",
    },
    {
        "id": "ISIC-NEV-0233",
        "title": "Atypical nevus under surveillance",
        "age": 34,
        "gender": "Male",
        "symptoms": ["atypical mole", "itching", "multiple nevi"],
        "diagnosis": "Dysplastic Nevus",
        "outcome": "Excisional biopsy showed mild atypia; annual dermoscopic follow-up.",
        "summary": "Numerous nevi with one lesion flagged at routine skin check.",
        "visual_findings": "Flat brown lesion with slightly fuzzy border and uniform pigment network.",
        "databaseSource": "ISIC Archive (International Skin Imaging Collaboration)",
        "verifiedBy": "Dermatopathology Review Board",
        "sourceUrl": "https://www.isic-archive.com/",
    },
    {
        "id": "ISIC-BCC-0108",
        "title": "Pearly nodule on the nasal ala",
        "age": 71,
        "gender": "Male",
        "symptoms": ["pearly nodule", "non-healing sore", "bleeding lesion"],
        "diagnosis": "Basal Cell Carcinoma",
        "outcome": "Mohs micrographic surgery with clear margins.",
        "summary": "Slow-growing facial lesion that intermittently bled and crusted.",
        "visual_findings": "Translucent pearly papule with rolled borders, arborizing telangiectasia "
                           "and central ulceration on sun-damaged skin.",
        "databaseSource": "ISIC Archive (International Skin Imaging Collaboration)",
        "verifiedBy": "Mohs Surgery Tumor Board",
        "sourceUrl": "https://www.isic-archive.com/",
    },
    {
        "id": "ISIC-SCC-0052",
        "title": "Scaly keratotic plaque on the forearm",
        "age": 66,
        "gender": "Female",
        "symptoms": ["scaly patch", "tender lesion", "rapid growth"],
        "diagnosis": "Cutaneous Squamous Cell Carcinoma",
        "outcome": "Surgical excision; no recurrence at 18 months.",
        "summary": "Immunosuppressed transplant recipient with a rapidly enlarging lesion.",
        "visual_findings": "Hyperkeratotic erythematous plaque with central keratin plug and "
                           "peripheral white scale on the skin.",
        "databaseSource": "ISIC Archive (International Skin Imaging Collaboration)",
        "verifiedBy": "Dermatopathology Review Board",
        "sourceUrl": "https://www.isic-archive.com/",
    },
    {
        "id": "TCIA-LUNG-0103",
        "title": "Spiculated right upper lobe nodule in a former smoker",
        "age": 64,
        "gender": "Male",
        "symptoms": ["persistent cough", "lung nodule", "weight loss", "hemoptysis"],
        "diagnosis": "Lung Adenocarcinoma",
        "outcome": "Lobectomy for stage IB disease followed by surveillance CT.",
        "summary": "Forty pack-year history; nodule found on low-dose CT screening.",
        "visual_findings": "Spiculated 2.4 cm solid nodule in the right upper lobe of the lung with "
                           "pleural retraction on chest CT.",
        "databaseSource": "The Cancer Imaging Archive (TCIA) - NLST",
        "verifiedBy": "Thoracic Oncology Tumor Board",
        "sourceUrl": "https://www.cancerimagingarchive.net/",
    },
    {
        "id": "TCIA-LUNG-0287",
        "title": "Central hilar mass with post-obstructive collapse",
        "age": 69,
        "gender": "Female",
        "symptoms": ["shortness of breath", "hemoptysis", "chest pain", "hoarseness"],
        "diagnosis": "Small Cell Lung Carcinoma",
        "outcome": "Concurrent chemoradiation; partial response at restaging.",
        "summary": "Heavy smoker presenting with rapid-onset dyspnea.",
        "visual_findings": "Large central hilar mass encasing the left main bronchus with lobar lung "
                           "collapse and mediastinal lymphadenopathy.",
        "databaseSource": "The Cancer Imaging Archive (TCIA) - LIDC-IDRI",
        "verifiedBy": "Thoracic Oncology Tumor Board",
        "sourceUrl": "https://www.cancerimagingarchive.net/",
    },
    {
        "id": "NIH-CXR-0419",
        "title": "Benign calcified granuloma on screening radiograph",
        "age": 47,
        "gender": "Male",
        "symptoms": ["incidental finding", "lung nodule"],
        "diagnosis": "Calcified Granuloma",
        "outcome": "Stable over two years; no further workup needed.",
        "summary": "Asymptomatic patient; pre-employment chest radiograph.",
        "visual_findings": "Small, densely calcified, well-circumscribed nodule in the left lower lung zone.",
        "databaseSource": "NIH Clinical Center ChestX-ray14",
        "verifiedBy": "Chest Radiology Review Panel",
        "sourceUrl": "https://nihcc.app.box.com/v/ChestXray-NIHCC",
    },
    {
        "id": "TCIA-BRCA-0311",
        "title": "Irregular spiculated breast mass",
        "age": 52,
        "gender": "Female",
        "symptoms": ["breast lump", "skin dimpling", "nipple retraction"],
        "diagnosis": "Invasive Ductal Carcinoma",
        "outcome": "Lumpectomy and adjuvant radiotherapy; hormone receptor positive.",
        "summary": "Self-detected painless lump in the upper outer quadrant.",
        "visual_findings": "Irregular spiculated hypoechoic breast mass with posterior acoustic "
                           "shadowing and associated microcalcifications.",
        "databaseSource": "The Cancer Imaging Archive (TCIA) - CBIS-DDSM",
        "verifiedBy": "Breast Imaging Tumor Board",
        "sourceUrl": "https://www.cancerimagingarchive.net/",
    },
    {
        "id": "TCIA-GBM-0076",
        "title": "Ring-enhancing frontal lobe lesion",
        "age": 61,
        "gender": "Male",
        "symptoms": ["headache", "seizure", "personality change", "confusion"],
        "diagnosis": "Glioblastoma",
        "outcome": "Maximal safe resection followed by temozolomide chemoradiation.",
        "summary": "New-onset seizure with two months of progressive headaches.",
        "visual_findings": "Heterogeneous ring-enhancing brain mass with central necrosis, "
                           "surrounding vasogenic edema and midline shift on MRI.",
        "databaseSource": "The Cancer Imaging Archive (TCIA) - TCGA-GBM",
        "verifiedBy": "Neuro-Oncology Tumor Board",
        "sourceUrl": "https://www.cancerimagingarchive.net/",
    },
    {
        "id": "TCIA-CRC-0154",
        "title": "Apple-core lesion of the sigmoid colon",
        "age": 59,
        "gender": "Female",
        "symptoms": ["rectal bleeding", "change in bowel habits", "iron deficiency anemia", "weight loss"],
        "diagnosis": "Colorectal Adenocarcinoma",
        "outcome": "Sigmoid colectomy; adjuvant chemotherapy for node-positive disease.",
        "summary": "Fatigue and intermittent rectal bleeding over four months.",
        "visual_findings": "Circumferential annular sigmoid colon wall thickening producing an "
                           "apple-core narrowing with shouldered margins.",
        "databaseSource": "The Cancer Imaging Archive (TCIA) - CT Colonography",
        "verifiedBy": "GI Oncology Tumor Board",
        "sourceUrl": "https://www.cancerimagingarchive.net/",
    },
    {
        "id": "TCIA-PANC-0042",
        "title": "Hypoenhancing pancreatic head mass",
        "age": 67,
        "gender": "Male",
        "symptoms": ["painless jaundice", "weight loss", "abdominal pain", "new onset diabetes"],
        "diagnosis": "Pancreatic Ductal Adenocarcinoma",
        "outcome": "Whipple procedure after neoadjuvant chemotherapy.",
        "summary": "Progressive jaundice with pruritus and dark urine.",
        "visual_findings": "Ill-defined hypoattenuating pancreatic head mass with upstream biliary "
                           "and pancreatic duct dilatation (double duct sign).",
        "databaseSource": "The Cancer Imaging Archive (TCIA) - Pancreas-CT",
        "verifiedBy": "Hepatobiliary Tumor Board",
        "sourceUrl": "https://www.cancerimagingarchive.net/",
    },
    {
        "id": "NIH-THY-0019",
        "title": "Hypoechoic thyroid nodule with microcalcifications",
        "age": 39,
        "gender": "Female",
        "symptoms": ["neck lump", "thyroid nodule", "hoarseness"],
        "diagnosis": "Papillary Thyroid Carcinoma",
        "outcome": "Total thyroidectomy and radioactive iodine ablation.",
        "summary": "Painless anterior neck swelling noticed while shaving.",
        "visual_findings": "Solid hypoechoic thyroid nodule, taller than wide, with irregular margins "
                           "and punctate echogenic microcalcifications in the neck.",
        "databaseSource": "NIH Thyroid Ultrasound Collection",
        "verifiedBy": "Endocrine Surgery Tumor Board",
        "sourceUrl": None,
    },
]
