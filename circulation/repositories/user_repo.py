from circulation.models.user import User
from circulation.repositories.locks import for_update

class UserRepo:
    @staticmethod
    def get_for_update(user_id: int):
        # borrow limiti sayılırken aynı kullanıcının paralel borrow'ları sıraya girer
        return for_update(User.query.filter_by(id=user_id), User).first()
