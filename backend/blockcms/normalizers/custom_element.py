from blockcms.domain.custom_elements import compute_default_data


def normalize_custom_element(definition, locale="en"):
    data = definition.to_dict()
    data["display_label"] = definition.display_label(locale)
    data["computed_default_data"] = compute_default_data(definition)
    return data
