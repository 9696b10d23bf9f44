"""Firestore accessors for studies and their collaborators."""


def study_doc_ref(db, study_id):
    return db.collection('studies').document(study_id)


def get_study_doc(db, study_id):
    return study_doc_ref(db, study_id).get()


def collaborator_doc_ref(db, study_id, user_id):
    return db.collection('study_collaborators').document(f"{study_id}__{user_id}")


def get_collaborator_doc(db, study_id, user_id):
    return collaborator_doc_ref(db, study_id, user_id).get()
